"""Toolchain provisioning: manifest, downloads, installation, setup pipeline."""

from .environment import Environment
from .installer import ArtifactInstaller, InstallError
from .manifest import Manifest, ManifestDownload, ManifestEntry, ResolutionError, resolve
from .pipeline import CancelToken, ProvisioningPipeline, SetupError, SetupStep

__all__ = [
    "ArtifactInstaller",
    "CancelToken",
    "Environment",
    "InstallError",
    "Manifest",
    "ManifestDownload",
    "ManifestEntry",
    "ProvisioningPipeline",
    "ResolutionError",
    "SetupError",
    "SetupStep",
    "resolve",
]
