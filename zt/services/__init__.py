"""Workspace services: project selection and build orchestration."""

from .build import BuildService
from .discovery import discover
from .errors import CleanFailed, CommandFailed, ConfigInvalid, ServiceError, SetupRunning
from .project import ProjectService

__all__ = [
    "BuildService",
    "CleanFailed",
    "CommandFailed",
    "ConfigInvalid",
    "ProjectService",
    "ServiceError",
    "SetupRunning",
    "discover",
]
