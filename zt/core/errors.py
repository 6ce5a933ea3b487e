"""Process exit codes for zt commands.

Every command maps its failure to one of these codes so scripts driving
``zt setup`` or ``zt build`` can tell a missing prerequisite from a failed
compile.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    - 0: Success
    - 1: User error (command used before setup/selection, bad argument)
    - 2: Environment error (git/python missing, unsupported platform)
    - 3: Build error (build, flash or install command failed)
    - 4: Network error (artifact download failed)
    - 5: I/O error (store or tool directory not writable)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
