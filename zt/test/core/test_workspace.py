"""Tests for zt.core.workspace module."""

from pathlib import Path

import pytest

from zt.core.result import Err, Ok
from zt.core.workspace import (
    WORKSPACE_ENV_VAR,
    Workspace,
    detect_workspace,
    find_workspace_upward,
    is_workspace_root,
)


class TestWorkspace:
    def test_paths(self, tmp_path: Path) -> None:
        ws = Workspace(root=tmp_path)
        assert ws.settings_path == tmp_path / "zt.toml"
        assert ws.store_path == tmp_path / ".zt" / "state.json"
        assert ws.build_dir == tmp_path / "build"
        assert str(ws) == str(tmp_path)

    def test_has_west(self, tmp_path: Path) -> None:
        ws = Workspace(root=tmp_path)
        assert not ws.has_west()
        (tmp_path / ".west").mkdir()
        assert ws.has_west()


class TestMarkers:
    def test_west_dir_marks_root(self, tmp_path: Path) -> None:
        (tmp_path / ".west").mkdir()
        assert is_workspace_root(tmp_path)

    def test_settings_file_marks_root(self, tmp_path: Path) -> None:
        (tmp_path / "zt.toml").write_text("", encoding="utf-8")
        assert is_workspace_root(tmp_path)

    def test_find_upward(self, tmp_path: Path) -> None:
        (tmp_path / ".west").mkdir()
        nested = tmp_path / "zephyr" / "samples"
        nested.mkdir(parents=True)
        assert find_workspace_upward(nested) == tmp_path


class TestDetectWorkspace:
    def test_env_var_wins(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(WORKSPACE_ENV_VAR, str(tmp_path))
        result = detect_workspace(start_dir=Path("/"))
        assert result == Ok(Workspace(root=tmp_path.resolve(), source="env"))

    def test_env_var_not_a_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(WORKSPACE_ENV_VAR, str(tmp_path / "missing"))
        result = detect_workspace()
        assert isinstance(result, Err)
        assert WORKSPACE_ENV_VAR in result.error.message

    def test_marker(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(WORKSPACE_ENV_VAR, raising=False)
        (tmp_path / "zt.toml").write_text("", encoding="utf-8")
        nested = tmp_path / "app"
        nested.mkdir()
        result = detect_workspace(start_dir=nested)
        assert isinstance(result, Ok)
        assert result.value.root == tmp_path.resolve()
        assert result.value.source == "marker"

    def test_falls_back_to_start_dir(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv(WORKSPACE_ENV_VAR, raising=False)
        result = detect_workspace(start_dir=tmp_path)
        assert isinstance(result, Ok)
        assert result.value.source in ("cwd", "marker")
