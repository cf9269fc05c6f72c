"""Target builder: command sequencing and failure gating."""

from __future__ import annotations

from pathlib import Path

import pytest

from nightly.core.config import Config, TargetConfig
from nightly.core.result import Err, Ok, Result
from nightly.output.console import MockConsole
from nightly.pipeline import builder as builder_mod
from nightly.pipeline import errors as errors_mod
from nightly.pipeline.builder import TargetBuilder
from nightly.pipeline.errors import (
    CompileFailed,
    OutputMissing,
    PrereqMissing,
    StripFailed,
    SystemPackagesFailed,
)
from nightly.pipeline.model import ArtifactKind, TrunkCommit
from nightly.platform.process import ProcessError

COMMIT = TrunkCommit(sha="c1" * 20, branch="main")


class FakeToolchain:
    """Runs nothing; writes the outputs cargo/trunk would produce."""

    def __init__(self, root: Path, *, fail: str | None = None, produce: bool = True) -> None:
        self.root = root
        self.fail = fail
        self.produce = produce
        self.calls: list[list[str]] = []

    def __call__(
        self,
        cmd: list[str],
        cwd: Path,
        env: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> Result[None, ProcessError]:
        del cwd, env, timeout
        self.calls.append(cmd)
        step = " ".join(cmd[:2])
        if step == self.fail:
            return Err(ProcessError(tuple(cmd), 101, "", ""))
        if self.produce and step == "cargo build":
            binary = self.root / "target" / "release" / "minesweeper"
            binary.parent.mkdir(parents=True, exist_ok=True)
            binary.write_bytes(b"\x7fELF")
        if self.produce and step == "trunk build":
            dist = self.root / "dist"
            dist.mkdir(exist_ok=True)
            (dist / "index.html").write_text("<html></html>", encoding="utf-8")
        return Ok(None)


@pytest.fixture(autouse=True)
def all_tools_present(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(builder_mod.shutil, "which", lambda tool: f"/usr/bin/{tool}")


def _builder(
    tmp_path: Path,
    target_id: str,
    *,
    config: Config | None = None,
    dry_run: bool = False,
    install_deps: bool = False,
) -> TargetBuilder:
    config = config or Config()
    target = config.target(target_id)
    assert target is not None
    return TargetBuilder(
        root=tmp_path,
        config=config,
        target=target,
        console=MockConsole(),
        dry_run=dry_run,
        install_deps=install_deps,
    )


def _install(monkeypatch: pytest.MonkeyPatch, toolchain: FakeToolchain) -> FakeToolchain:
    monkeypatch.setattr(builder_mod, "run_silent", toolchain)
    return toolchain


class TestNativeBuild:
    def test_build_test_strip(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        toolchain = _install(monkeypatch, FakeToolchain(tmp_path))
        result = _builder(tmp_path, "linux").build(COMMIT)

        assert isinstance(result, Ok)
        artifact = result.value
        assert artifact.kind == ArtifactKind.BINARY
        assert artifact.path == tmp_path / "target" / "release" / "minesweeper"
        assert artifact.stripped is True
        assert artifact.slot == "minesweeper"
        assert artifact.label == "linux @ c1c1c1c"
        assert [c[:2] for c in toolchain.calls] == [
            ["cargo", "build"],
            ["cargo", "test"],
            ["strip", str(artifact.path)],
        ]

    def test_failed_tests_produce_no_artifact(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        toolchain = _install(monkeypatch, FakeToolchain(tmp_path, fail="cargo test"))
        result = _builder(tmp_path, "linux").build(COMMIT)

        assert isinstance(result, Err)
        assert isinstance(result.error, errors_mod.TestsFailed)
        assert result.error.returncode == 101
        # strip never ran
        assert all(c[0] != "strip" for c in toolchain.calls)

    def test_compile_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, FakeToolchain(tmp_path, fail="cargo build"))
        result = _builder(tmp_path, "linux").build(COMMIT)
        assert result == Err(CompileFailed(target="linux", returncode=101))

    def test_missing_binary(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, FakeToolchain(tmp_path, produce=False))
        result = _builder(tmp_path, "linux").build(COMMIT)
        assert isinstance(result, Err)
        assert isinstance(result.error, OutputMissing)

    def test_strip_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        binary = tmp_path / "target" / "release" / "minesweeper"
        _install(monkeypatch, FakeToolchain(tmp_path, fail=f"strip {binary}"))
        result = _builder(tmp_path, "linux").build(COMMIT)
        assert isinstance(result, Err)
        assert isinstance(result.error, StripFailed)

    def test_strip_disabled(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        toolchain = _install(monkeypatch, FakeToolchain(tmp_path))
        config = Config.from_dict({"targets": {"linux": {"strip": False}}})
        result = _builder(tmp_path, "linux", config=config).build(COMMIT)
        assert isinstance(result, Ok)
        assert result.value.stripped is False
        assert len(toolchain.calls) == 2

    def test_cross_target_paths(self, tmp_path: Path) -> None:
        config = Config.from_dict(
            {"targets": {"windows": {"rust_target": "x86_64-pc-windows-gnu"}}}
        )
        builder = _builder(tmp_path, "windows", config=config)
        assert builder.compile_command() == [
            "cargo",
            "build",
            "--release",
            "--target",
            "x86_64-pc-windows-gnu",
        ]
        assert builder.native_output_path() == (
            tmp_path / "target" / "x86_64-pc-windows-gnu" / "release" / "minesweeper.exe"
        )

    def test_missing_tool(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            builder_mod.shutil, "which", lambda tool: None if tool == "cargo" else tool
        )
        result = _builder(tmp_path, "linux").build(COMMIT)
        assert isinstance(result, Err)
        assert isinstance(result.error, PrereqMissing)
        assert result.error.tool == "cargo"


class TestSystemPackages:
    def test_installs_with_apt(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, FakeToolchain(tmp_path))
        seen: list[list[str]] = []

        def fake_run(
            cmd: list[str],
            cwd: Path,
            env: dict[str, str] | None = None,
            *,
            timeout: float | None = None,
        ) -> Result[str, ProcessError]:
            seen.append(cmd)
            return Ok("")

        monkeypatch.setattr(builder_mod, "run_process", fake_run)
        monkeypatch.setattr(builder_mod, "_sudo_prefix", lambda: [])

        result = _builder(tmp_path, "linux", install_deps=True).build(COMMIT)
        assert isinstance(result, Ok)
        assert seen[0] == ["apt-get", "update"]
        assert seen[1][:3] == ["apt-get", "install", "-y"]
        assert "libgtk-3-dev" in seen[1]

    def test_install_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        toolchain = _install(monkeypatch, FakeToolchain(tmp_path))

        def fake_run(
            cmd: list[str],
            cwd: Path,
            env: dict[str, str] | None = None,
            *,
            timeout: float | None = None,
        ) -> Result[str, ProcessError]:
            return Err(ProcessError(tuple(cmd), 100, "", "E: Unable to locate package"))

        monkeypatch.setattr(builder_mod, "run_process", fake_run)
        monkeypatch.setattr(builder_mod, "_sudo_prefix", lambda: [])

        result = _builder(tmp_path, "linux", install_deps=True).build(COMMIT)
        assert isinstance(result, Err)
        assert isinstance(result.error, SystemPackagesFailed)
        assert toolchain.calls == []


class TestWebBuild:
    def test_bundle(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        toolchain = _install(monkeypatch, FakeToolchain(tmp_path))
        monkeypatch.setattr(builder_mod, "run_process", lambda *a, **k: Ok(""))

        result = _builder(tmp_path, "web").build(COMMIT)
        assert isinstance(result, Ok)
        assert result.value.kind == ArtifactKind.BUNDLE
        assert result.value.path == tmp_path / "dist"
        assert toolchain.calls == [
            ["trunk", "build", "--release", "--public-url", "/minesweeper/"]
        ]

    def test_missing_index(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _install(monkeypatch, FakeToolchain(tmp_path, produce=False))
        monkeypatch.setattr(builder_mod, "run_process", lambda *a, **k: Ok(""))

        result = _builder(tmp_path, "web").build(COMMIT)
        assert result == Err(OutputMissing(target="web", path=tmp_path / "dist" / "index.html"))

    def test_requires_trunk(self, tmp_path: Path) -> None:
        assert _builder(tmp_path, "web").required_tools() == ["cargo", "trunk"]


def test_dry_run_runs_nothing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    toolchain = _install(monkeypatch, FakeToolchain(tmp_path))
    builder = _builder(tmp_path, "linux", dry_run=True)
    result = builder.build(COMMIT)

    assert isinstance(result, Ok)
    assert toolchain.calls == []
    assert [" ".join(c) for c in builder.planned_commands()] == [
        "cargo build --release",
        "cargo test --release",
        f"strip {tmp_path / 'target' / 'release' / 'minesweeper'}",
    ]


def test_target_config_is_exposed(tmp_path: Path) -> None:
    builder = _builder(tmp_path, "windows")
    assert isinstance(builder.target, TargetConfig)
    assert builder.target.binary == "minesweeper.exe"
