"""Platform and architecture detection.

Detection happens once, when the CLI builds its context; the resulting
PlatformInfo is passed explicitly to every service. Manifest lookups use the
``manifest_key`` of each enum (``linux``/``darwin``/``win32`` and
``x64``/``arm64``).
"""

from __future__ import annotations

import os as _os
import platform as _platform
import sys as _sys
from dataclasses import dataclass
from enum import Enum, auto

__all__ = [
    "Platform",
    "Arch",
    "PlatformInfo",
    "detect",
    "detect_arch",
    "detect_platform",
]


class Platform(Enum):
    """Operating system platform."""

    LINUX = auto()
    MACOS = auto()
    WINDOWS = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def is_windows(self) -> bool:
        return self == Platform.WINDOWS

    @property
    def manifest_key(self) -> str:
        """Key used by the toolchain manifest for this platform."""
        return {
            Platform.LINUX: "linux",
            Platform.MACOS: "darwin",
            Platform.WINDOWS: "win32",
            Platform.UNKNOWN: "unknown",
        }[self]

    @property
    def path_separator(self) -> str:
        """Separator between PATH entries."""
        return ";" if self == Platform.WINDOWS else ":"

    @property
    def python_command(self) -> str:
        """Interpreter command used by setup (``python3`` is not on Windows PATH)."""
        return "python" if self == Platform.WINDOWS else "python3"

    @property
    def venv_bin_dir(self) -> str:
        """Name of the executables directory inside a virtual environment."""
        return "Scripts" if self == Platform.WINDOWS else "bin"


class Arch(Enum):
    """CPU architecture."""

    X64 = auto()
    ARM64 = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def manifest_key(self) -> str:
        return {
            Arch.X64: "x64",
            Arch.ARM64: "arm64",
            Arch.UNKNOWN: "unknown",
        }[self]


@dataclass(frozen=True, slots=True)
class PlatformInfo:
    """Detected platform and architecture."""

    platform: Platform
    arch: Arch

    @property
    def is_windows(self) -> bool:
        return self.platform == Platform.WINDOWS

    def __str__(self) -> str:
        return f"{self.platform.manifest_key}-{self.arch.manifest_key}"


def detect_platform() -> Platform:
    """Detect the current operating system."""
    # platform.system() may query WMI on Windows (slow); sys.platform does not.
    system = _sys.platform.lower()
    if system.startswith("linux"):
        return Platform.LINUX
    if system.startswith("darwin"):
        return Platform.MACOS
    if system.startswith(("win32", "cygwin", "msys")):
        return Platform.WINDOWS
    return Platform.UNKNOWN


def detect_arch() -> Arch:
    """Detect the current CPU architecture."""
    if detect_platform() == Platform.WINDOWS:
        machine = (
            _os.environ.get("PROCESSOR_ARCHITEW6432")
            or _os.environ.get("PROCESSOR_ARCHITECTURE")
            or ""
        ).lower()
    else:
        machine = _platform.machine().lower()
    if machine in ("x86_64", "amd64"):
        return Arch.X64
    if machine in ("aarch64", "arm64"):
        return Arch.ARM64
    return Arch.UNKNOWN


def detect() -> PlatformInfo:
    """Detect platform information for the running host."""
    return PlatformInfo(platform=detect_platform(), arch=detect_arch())
