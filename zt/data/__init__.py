"""Data files shipped with zt (toolchain manifest)."""
