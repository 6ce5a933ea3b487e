from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from zt.core.config import ConfigStore
from zt.core.errors import ErrorCode
from zt.core.result import Err
from zt.core.settings import Settings, load_settings_or_default
from zt.core.store import WorkspaceStore
from zt.core.workspace import Workspace, detect_workspace
from zt.output.console import ConsoleProtocol, RichConsole
from zt.platform.detection import PlatformInfo, detect
from zt.platform.paths import default_tools_dir, expand_user_path
from zt.platform.process import CommandRunner, shell_for
from zt.services.base import Chooser
from zt.services.build import BuildService
from zt.services.project import ProjectService
from zt.toolchain.download import FileDownloader
from zt.toolchain.http import RealHttpClient
from zt.toolchain.installer import ArtifactInstaller
from zt.toolchain.pipeline import ProvisioningPipeline

DOWNLOADS_DIR = "downloads"


@dataclass(frozen=True, slots=True)
class AppContext:
    """Everything a command needs, built once per invocation."""

    workspace: Workspace
    platform: PlatformInfo
    settings: Settings
    console: ConsoleProtocol
    runner: CommandRunner
    config_store: ConfigStore
    tools_dir: Path

    @property
    def manifest_path(self) -> Path | None:
        manifest = self.settings.paths.manifest
        if manifest is None:
            return None
        path = Path(manifest)
        return path if path.is_absolute() else self.workspace.root / path

    def pipeline(self) -> ProvisioningPipeline:
        downloader = FileDownloader(RealHttpClient(), self.tools_dir / DOWNLOADS_DIR)
        return ProvisioningPipeline(
            platform=self.platform,
            tools_dir=self.tools_dir,
            settings=self.settings,
            console=self.console,
            runner=self.runner,
            installer=ArtifactInstaller(
                cache=downloader, runner=self.runner, console=self.console
            ),
            config_store=self.config_store,
            manifest_path=self.manifest_path,
            host_env=os.environ,
        )

    def project_service(self, choose: Chooser | None = None) -> ProjectService:
        return ProjectService(
            workspace=self.workspace,
            console=self.console,
            runner=self.runner,
            config_store=self.config_store,
            tools_dir=self.tools_dir,
            choose=choose,
        )

    def build_service(self, choose: Chooser | None = None) -> BuildService:
        return BuildService(
            workspace=self.workspace,
            console=self.console,
            runner=self.runner,
            config_store=self.config_store,
            tools_dir=self.tools_dir,
            choose=choose,
        )


def build_context() -> AppContext:
    workspace_result = detect_workspace()
    if isinstance(workspace_result, Err):
        typer.echo(f"error: {workspace_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    workspace = workspace_result.value

    settings_result = load_settings_or_default(workspace.settings_path)
    if isinstance(settings_result, Err):
        typer.echo(f"error: {settings_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    settings = settings_result.value

    platform = detect()
    tools_dir = (
        expand_user_path(settings.paths.tools, platform.platform)
        if settings.paths.tools
        else default_tools_dir(platform.platform)
    )

    return AppContext(
        workspace=workspace,
        platform=platform,
        settings=settings,
        console=RichConsole(),
        runner=CommandRunner(shell_for(platform.platform)),
        config_store=ConfigStore(WorkspaceStore(workspace.store_path)),
        tools_dir=tools_dir,
    )
