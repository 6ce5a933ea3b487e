"""Typed loading of the optional ``zt.toml`` workspace settings.

Every field has a default, so a workspace without ``zt.toml`` behaves exactly
like one with an empty file.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_str, get_table

__all__ = [
    "DEFAULT_TOOLCHAIN_PATH",
    "DEFAULT_TOOLCHAIN_VARIANT",
    "PathsSettings",
    "Settings",
    "SettingsError",
    "ToolchainSettings",
    "WestSettings",
    "load_settings",
    "load_settings_or_default",
]

DEFAULT_TOOLCHAIN_VARIANT = "gnuarmemb"
# Relative to the tools directory.
DEFAULT_TOOLCHAIN_PATH = "toolchain/gcc-arm-none-eabi-9-2019-q4-major"


@dataclass(frozen=True, slots=True)
class SettingsError:
    """Error when zt.toml cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class PathsSettings:
    """Tool directory and manifest override.

    ``tools`` may use ``~`` and environment variables. ``manifest`` is
    resolved against the workspace root when relative; None selects the
    manifest bundled with zt.
    """

    tools: str | None = None
    manifest: str | None = None


@dataclass(frozen=True, slots=True)
class ToolchainSettings:
    """Values exported as ZEPHYR_TOOLCHAIN_VARIANT / GNUARMEMB_TOOLCHAIN_PATH."""

    variant: str = DEFAULT_TOOLCHAIN_VARIANT
    path: str = DEFAULT_TOOLCHAIN_PATH


@dataclass(frozen=True, slots=True)
class WestSettings:
    package: str = "west"


@dataclass(frozen=True, slots=True)
class Settings:
    paths: PathsSettings = field(default_factory=PathsSettings)
    toolchain: ToolchainSettings = field(default_factory=ToolchainSettings)
    west: WestSettings = field(default_factory=WestSettings)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Settings:
        """Create Settings from a mapping (parsed TOML)."""
        paths: StrDict = get_table(data, "paths") or {}
        toolchain: StrDict = get_table(data, "toolchain") or {}
        west: StrDict = get_table(data, "west") or {}

        return cls(
            paths=PathsSettings(
                tools=get_str(paths, "tools"),
                manifest=get_str(paths, "manifest"),
            ),
            toolchain=ToolchainSettings(
                variant=get_str(toolchain, "variant") or DEFAULT_TOOLCHAIN_VARIANT,
                path=get_str(toolchain, "path") or DEFAULT_TOOLCHAIN_PATH,
            ),
            west=WestSettings(package=get_str(west, "package") or "west"),
        )


def _parse_toml(path: Path) -> Result[StrDict, SettingsError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(SettingsError(f"Settings file not found: {path}", path=path))
    except PermissionError:
        return Err(SettingsError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(SettingsError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(SettingsError(f"Error reading settings: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(SettingsError("Settings root must be a TOML table", path=path))
    return Ok(data)


def load_settings(path: Path) -> Result[Settings, SettingsError]:
    """Load and parse ``zt.toml``.

    Args:
        path: Path to the settings file

    Returns:
        Ok(Settings) on success, Err(SettingsError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result
    return Ok(Settings.from_dict(result.value))


def load_settings_or_default(path: Path) -> Result[Settings, SettingsError]:
    """Like load_settings, but a missing file yields the defaults.

    A file that exists and is invalid is still an error.
    """
    if not path.exists():
        return Ok(Settings())
    return load_settings(path)
