"""Core domain types and logic."""

from .config import BOARDS, Config, ConfigStore
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok
from .settings import Settings, SettingsError, load_settings
from .workspace import Workspace, WorkspaceError, detect_workspace

__all__ = [
    # config
    "BOARDS",
    "Config",
    "ConfigStore",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
    # settings
    "Settings",
    "SettingsError",
    "load_settings",
    # workspace
    "Workspace",
    "WorkspaceError",
    "detect_workspace",
]
