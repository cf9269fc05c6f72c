"""Target builder: compile, test, strip and package one target.

Native targets:  cargo build --release -> cargo test --release -> strip
Web target:      rustup target add wasm32-unknown-unknown -> trunk build
                 --release --public-url <prefix>

Steps run strictly in order; the first failure aborts the target and no
artifact is produced.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from nightly.core.config import Config, TargetConfig
from nightly.core.result import Err, Ok, Result
from nightly.output.console import ConsoleProtocol, Style
from nightly.platform.process import run as run_process
from nightly.platform.process import run_silent
from nightly.pipeline.errors import (
    BuildError,
    CompileFailed,
    OutputMissing,
    PrereqMissing,
    StripFailed,
    SystemPackagesFailed,
    TestsFailed,
)
from nightly.pipeline.model import Artifact, ArtifactKind, TrunkCommit
from nightly.pipeline.timeouts import (
    BUNDLE_TIMEOUT_SECONDS,
    CARGO_BUILD_TIMEOUT_SECONDS,
    CARGO_TEST_TIMEOUT_SECONDS,
    RUSTUP_TIMEOUT_SECONDS,
    STRIP_TIMEOUT_SECONDS,
    SYSTEM_PACKAGES_TIMEOUT_SECONDS,
)

_TOOL_HINTS = {
    "cargo": "Install Rust: https://rustup.rs/",
    "trunk": "Run: cargo install --locked trunk",
    "strip": "Install binutils (or set strip = false for this target)",
    "apt-get": "System packages can only be installed on Debian/Ubuntu runners",
}


class TargetBuilder:
    """Builds one target of the capability table."""

    def __init__(
        self,
        *,
        root: Path,
        config: Config,
        target: TargetConfig,
        console: ConsoleProtocol,
        dry_run: bool = False,
        install_deps: bool = False,
    ) -> None:
        self._root = root
        self._config = config
        self._target = target
        self._console = console
        self._dry_run = dry_run
        self._install_deps = install_deps

    @property
    def target(self) -> TargetConfig:
        return self._target

    def build(self, commit: TrunkCommit) -> Result[Artifact, BuildError]:
        """Produce the target's artifact for `commit`.

        Returns:
            Ok(Artifact) when every step passed
            Err(BuildError) naming the first failing step
        """
        prereqs = self.check_prereqs()
        if isinstance(prereqs, Err):
            return prereqs

        if self._install_deps and self._target.system_packages:
            installed = self.install_system_packages()
            if isinstance(installed, Err):
                return installed

        if self._target.is_web:
            return self._build_web(commit)
        return self._build_native(commit)

    def required_tools(self) -> list[str]:
        tools = ["cargo"]
        if self._target.is_web:
            tools.append("trunk")
        elif self._target.strip:
            tools.append(self._target.strip_tool)
        return tools

    def check_prereqs(self) -> Result[None, BuildError]:
        if self._dry_run:
            return Ok(None)
        for tool in self.required_tools():
            if shutil.which(tool) is None:
                return Err(
                    PrereqMissing(
                        target=self._target.id,
                        tool=tool,
                        hint=_TOOL_HINTS.get(tool, f"Install {tool} and make sure it is on PATH"),
                    )
                )
        return Ok(None)

    def install_system_packages(self) -> Result[None, BuildError]:
        """Install the target's system libraries with apt-get."""
        packages = self._target.system_packages
        if not self._dry_run and shutil.which("apt-get") is None:
            return Err(PrereqMissing(self._target.id, "apt-get", _TOOL_HINTS["apt-get"]))

        sudo = _sudo_prefix()
        for cmd in (
            [*sudo, "apt-get", "update"],
            [*sudo, "apt-get", "install", "-y", *packages],
        ):
            self._echo(cmd)
            if self._dry_run:
                continue
            result = run_process(cmd, cwd=self._root, timeout=SYSTEM_PACKAGES_TIMEOUT_SECONDS)
            if isinstance(result, Err):
                return Err(
                    SystemPackagesFailed(
                        target=self._target.id,
                        packages=packages,
                        detail=result.error.output,
                    )
                )
        return Ok(None)

    def compile_command(self) -> list[str]:
        if self._target.is_web:
            return [
                "trunk",
                "build",
                "--release",
                "--public-url",
                self._config.deploy.public_url,
            ]
        return ["cargo", "build", "--release", *self._cargo_target_args()]

    def test_command(self) -> list[str]:
        return ["cargo", "test", "--release", *self._cargo_target_args()]

    def strip_command(self) -> list[str]:
        return [self._target.strip_tool, str(self.native_output_path())]

    def native_output_path(self) -> Path:
        """Where cargo leaves the release binary for this target."""
        base = self._root / "target"
        if self._target.rust_target:
            base = base / self._target.rust_target
        return base / "release" / (self._target.binary or self._config.project.name)

    def bundle_dir(self) -> Path:
        return self._root / self._target.dist_dir

    def planned_commands(self) -> list[list[str]]:
        """Every command `build` would run, in order (for plans and dry runs)."""
        if self._target.is_web:
            return [self._rustup_command(), self.compile_command()]
        cmds = [self.compile_command()]
        if self._target.run_tests:
            cmds.append(self.test_command())
        if self._target.strip:
            cmds.append(self.strip_command())
        return cmds

    def _build_native(self, commit: TrunkCommit) -> Result[Artifact, BuildError]:
        target_id = self._target.id

        compiled = self._step(self.compile_command(), CARGO_BUILD_TIMEOUT_SECONDS)
        if isinstance(compiled, Err):
            return Err(CompileFailed(target=target_id, returncode=compiled.error))

        # Tests gate the publish path: a red suite never yields an artifact.
        if self._target.run_tests:
            tested = self._step(self.test_command(), CARGO_TEST_TIMEOUT_SECONDS)
            if isinstance(tested, Err):
                return Err(TestsFailed(target=target_id, returncode=tested.error))

        binary = self.native_output_path()
        if not self._dry_run and not binary.is_file():
            return Err(OutputMissing(target=target_id, path=binary))

        if self._target.strip:
            stripped = self._step(self.strip_command(), STRIP_TIMEOUT_SECONDS)
            if isinstance(stripped, Err):
                return Err(StripFailed(target=target_id, path=binary, returncode=stripped.error))

        return Ok(
            Artifact(
                target=target_id,
                kind=ArtifactKind.BINARY,
                path=binary,
                commit=commit,
                stripped=self._target.strip,
            )
        )

    def _build_web(self, commit: TrunkCommit) -> Result[Artifact, BuildError]:
        target_id = self._target.id
        self._ensure_rust_target()

        bundled = self._step(self.compile_command(), BUNDLE_TIMEOUT_SECONDS)
        if isinstance(bundled, Err):
            return Err(CompileFailed(target=target_id, returncode=bundled.error))

        bundle = self.bundle_dir()
        if not self._dry_run and not (bundle / "index.html").is_file():
            return Err(OutputMissing(target=target_id, path=bundle / "index.html"))

        return Ok(
            Artifact(
                target=target_id,
                kind=ArtifactKind.BUNDLE,
                path=bundle,
                commit=commit,
            )
        )

    def _rustup_command(self) -> list[str]:
        triple = self._target.rust_target or "wasm32-unknown-unknown"
        return ["rustup", "target", "add", triple]

    def _ensure_rust_target(self) -> None:
        cmd = self._rustup_command()
        if not self._dry_run and shutil.which("rustup") is None:
            self._console.warning(f"rustup not found; assuming {cmd[-1]} is installed")
            return

        self._echo(cmd)
        if self._dry_run:
            return
        result = run_process(cmd, cwd=self._root, timeout=RUSTUP_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            # trunk reports a precise error if the target really is missing
            self._console.warning(f"rustup target add failed: {result.error.output}")

    def _step(self, cmd: list[str], timeout: float) -> Result[None, int]:
        """Run one build step with streamed output; Err carries the exit code."""
        self._echo(cmd)
        if self._dry_run:
            return Ok(None)
        result = run_silent(cmd, cwd=self._root, timeout=timeout)
        if isinstance(result, Err):
            return Err(result.error.returncode)
        return Ok(None)

    def _cargo_target_args(self) -> list[str]:
        if self._target.rust_target:
            return ["--target", self._target.rust_target]
        return []

    def _echo(self, cmd: list[str]) -> None:
        self._console.print(" ".join(cmd), Style.DIM)


def _sudo_prefix() -> list[str]:
    geteuid = getattr(os, "geteuid", None)
    if geteuid is None or geteuid() == 0 or shutil.which("sudo") is None:
        return []
    return ["sudo"]
