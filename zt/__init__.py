"""zt - Zephyr toolchain provisioning and build CLI."""

__version__ = "0.1.0"
