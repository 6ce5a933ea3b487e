"""Platform abstraction layer."""

from .detection import (
    Arch,
    Platform,
    PlatformInfo,
    detect,
)
from .paths import (
    default_tools_dir,
    home,
)
from .process import (
    CommandOutput,
    CommandRunner,
    ProcessError,
    shell_for,
)

__all__ = [
    # detection
    "Arch",
    "Platform",
    "PlatformInfo",
    "detect",
    # paths
    "default_tools_dir",
    "home",
    # process
    "CommandOutput",
    "CommandRunner",
    "ProcessError",
    "shell_for",
]
