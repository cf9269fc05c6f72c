"""Tests for nightly.core.workspace module."""

from __future__ import annotations

from pathlib import Path

import pytest

from nightly.core.result import Err, Ok
from nightly.core.workspace import (
    ROOT_ENV_VAR,
    Project,
    detect_project,
    find_project_upward,
)


@pytest.fixture(autouse=True)
def _no_root_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(ROOT_ENV_VAR, raising=False)


class TestFindProjectUpward:
    def test_finds_config(self, tmp_path: Path) -> None:
        (tmp_path / "nightly.toml").write_text("", encoding="utf-8")
        nested = tmp_path / "src" / "game"
        nested.mkdir(parents=True)
        assert find_project_upward(nested) == tmp_path.resolve()

    def test_falls_back_to_cargo_manifest(self, tmp_path: Path) -> None:
        (tmp_path / "Cargo.toml").write_text("[package]\n", encoding="utf-8")
        assert find_project_upward(tmp_path) == tmp_path.resolve()

    def test_nearest_wins(self, tmp_path: Path) -> None:
        (tmp_path / "Cargo.toml").write_text("", encoding="utf-8")
        inner = tmp_path / "inner"
        inner.mkdir()
        (inner / "nightly.toml").write_text("", encoding="utf-8")
        assert find_project_upward(inner) == inner.resolve()


class TestDetectProject:
    def test_explicit(self, tmp_path: Path) -> None:
        result = detect_project(explicit=tmp_path)
        assert result == Ok(Project(root=tmp_path.resolve()))

    def test_explicit_must_exist(self, tmp_path: Path) -> None:
        result = detect_project(explicit=tmp_path / "missing")
        assert isinstance(result, Err)

    def test_env_var(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ROOT_ENV_VAR, str(tmp_path))
        result = detect_project(start=Path("/"))
        assert isinstance(result, Ok)
        assert result.value.root == tmp_path.resolve()

    def test_upward_search(self, tmp_path: Path) -> None:
        (tmp_path / "Cargo.toml").write_text("", encoding="utf-8")
        result = detect_project(start=tmp_path)
        assert isinstance(result, Ok)
        assert result.value.config_path == tmp_path.resolve() / "nightly.toml"

    def test_not_found(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        import nightly.core.workspace as workspace_mod

        monkeypatch.setattr(workspace_mod, "find_project_upward", lambda start: None)
        result = detect_project(start=tmp_path)
        assert isinstance(result, Err)
        assert result.error.searched_from == tmp_path
