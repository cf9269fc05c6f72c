"""Typed configuration loaded from `nightly.toml`.

Every key is optional. The defaults reproduce the release workflow of the
minesweeper game: a Linux and a Windows native build published to the
`nightly` release, and a WebAssembly bundle deployed to GitHub Pages.

Example:
    [project]
    name = "minesweeper"
    trunk = "main"

    [release]
    marker = "nightly"

    [targets.windows]
    strip = false

    [deploy]
    public_url = "/minesweeper/"
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from pathlib import Path
from typing import TypeVar
from urllib.parse import urlsplit

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_float,
    get_int,
    get_raw_str,
    get_str,
    get_str_tuple,
    get_table,
)

T = TypeVar("T")

__all__ = [
    "Config",
    "ConfigError",
    "CONFIG_FILE_NAME",
    "DeployConfig",
    "ProjectConfig",
    "ReleaseConfig",
    "RetryConfig",
    "TargetConfig",
    "TargetKind",
    "WorkflowConfig",
    "default_targets",
    "load_config",
    "load_config_or_default",
    "validate_config",
]

CONFIG_FILE_NAME = "nightly.toml"

DEFAULT_PROJECT = "minesweeper"
DEFAULT_TRUNK = "main"
DEFAULT_REMOTE = "origin"
DEFAULT_MARKER = "nightly"
DEFAULT_PAGES_BRANCH = "gh-pages"
DEFAULT_WASM_TRIPLE = "wasm32-unknown-unknown"

LINUX_SYSTEM_PACKAGES = (
    "libxcb-shape0-dev",
    "libxcb-xfixes0-dev",
    "libssl-dev",
    "libgtk-3-dev",
)


class TargetKind(StrEnum):
    NATIVE = "native"
    WEB = "web"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded, parsed or validated."""

    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    name: str = DEFAULT_PROJECT
    trunk: str = DEFAULT_TRUNK
    remote: str = DEFAULT_REMOTE


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """The release record the nightly marker identifies."""

    marker: str = DEFAULT_MARKER
    title: str = f"{DEFAULT_PROJECT} nightly"
    body: str = f"Nightly build of {DEFAULT_PROJECT}"
    prerelease: bool = False
    repo: str | None = None


@dataclass(frozen=True, slots=True)
class DeployConfig:
    """Static hosting of the web bundle.

    `public_url` is baked into the bundle by the bundler and must resolve
    to the path the host serves the bundle from (`/<base_path>/`).
    """

    branch: str = DEFAULT_PAGES_BRANCH
    public_url: str = f"/{DEFAULT_PROJECT}/"
    base_path: str = DEFAULT_PROJECT
    on_schedule: bool = False


@dataclass(frozen=True, slots=True)
class RetryConfig:
    attempts: int = 3
    delay_seconds: float = 2.0


@dataclass(frozen=True, slots=True)
class WorkflowConfig:
    """Inputs for the rendered CI workflow."""

    cron: str = "0 0 1 * *"
    python: str = "3.12"
    install: str = "pip install nightly-pipeline"


@dataclass(frozen=True, slots=True)
class TargetConfig:
    """One row of the per-target capability table."""

    id: str
    kind: TargetKind
    host: str
    runner: str
    binary: str | None = None
    rust_target: str | None = None
    system_packages: tuple[str, ...] = ()
    run_tests: bool = True
    strip: bool = True
    strip_tool: str = "strip"
    moves_marker: bool = True
    dist_dir: str = "dist"

    @property
    def is_native(self) -> bool:
        return self.kind == TargetKind.NATIVE

    @property
    def is_web(self) -> bool:
        return self.kind == TargetKind.WEB


def default_targets(project: str = DEFAULT_PROJECT) -> tuple[TargetConfig, ...]:
    return (
        TargetConfig(
            id="linux",
            kind=TargetKind.NATIVE,
            host="linux",
            runner="ubuntu-latest",
            binary=project,
            system_packages=LINUX_SYSTEM_PACKAGES,
        ),
        TargetConfig(
            id="windows",
            kind=TargetKind.NATIVE,
            host="windows",
            runner="windows-latest",
            binary=f"{project}.exe",
        ),
        TargetConfig(
            id="web",
            kind=TargetKind.WEB,
            host="any",
            runner="ubuntu-latest",
            rust_target=DEFAULT_WASM_TRIPLE,
            run_tests=False,
            strip=False,
            moves_marker=False,
        ),
    )


def _default_target_table() -> tuple[TargetConfig, ...]:
    return default_targets()


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    deploy: DeployConfig = field(default_factory=DeployConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    targets: tuple[TargetConfig, ...] = field(default_factory=_default_target_table)

    def target(self, target_id: str) -> TargetConfig | None:
        for t in self.targets:
            if t.id == target_id:
                return t
        return None

    @property
    def target_ids(self) -> tuple[str, ...]:
        return tuple(t.id for t in self.targets)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from parsed TOML.

        Raises:
            ValueError: On an unknown target kind or a new target without one.
        """
        project_tbl: StrDict = get_table(data, "project") or {}
        release_tbl: StrDict = get_table(data, "release") or {}
        deploy_tbl: StrDict = get_table(data, "deploy") or {}
        retry_tbl: StrDict = get_table(data, "retry") or {}
        workflow_tbl: StrDict = get_table(data, "workflow") or {}
        targets_tbl: StrDict = get_table(data, "targets") or {}

        project = ProjectConfig(
            name=get_str(project_tbl, "name") or DEFAULT_PROJECT,
            trunk=get_str(project_tbl, "trunk") or DEFAULT_TRUNK,
            remote=get_str(project_tbl, "remote") or DEFAULT_REMOTE,
        )
        name = project.name

        release = ReleaseConfig(
            marker=get_str(release_tbl, "marker") or DEFAULT_MARKER,
            title=get_str(release_tbl, "title") or f"{name} nightly",
            body=_or_default(get_raw_str(release_tbl, "body"), f"Nightly build of {name}"),
            prerelease=_or_default(get_bool(release_tbl, "prerelease"), False),
            repo=get_str(release_tbl, "repo"),
        )

        base_path = get_str(deploy_tbl, "base_path") or name
        deploy = DeployConfig(
            branch=get_str(deploy_tbl, "branch") or DEFAULT_PAGES_BRANCH,
            public_url=get_str(deploy_tbl, "public_url") or f"/{base_path}/",
            base_path=base_path,
            on_schedule=_or_default(get_bool(deploy_tbl, "on_schedule"), False),
        )

        retry = RetryConfig(
            attempts=_or_default(get_int(retry_tbl, "attempts"), 3),
            delay_seconds=_or_default(get_float(retry_tbl, "delay_seconds"), 2.0),
        )

        defaults = WorkflowConfig()
        workflow = WorkflowConfig(
            cron=get_str(workflow_tbl, "cron") or defaults.cron,
            python=get_str(workflow_tbl, "python") or defaults.python,
            install=get_str(workflow_tbl, "install") or defaults.install,
        )

        return cls(
            project=project,
            release=release,
            deploy=deploy,
            retry=retry,
            workflow=workflow,
            targets=_parse_targets(targets_tbl, project=name),
        )


def _or_default(value: T | None, default: T) -> T:
    return default if value is None else value


def _parse_targets(table: StrDict, *, project: str) -> tuple[TargetConfig, ...]:
    base = {t.id: t for t in default_targets(project)}
    order = list(base)

    for target_id, raw in table.items():
        tbl = as_str_dict(raw)
        if tbl is None:
            raise ValueError(f"targets.{target_id} must be a table")

        if get_bool(tbl, "enabled") is False:
            base.pop(target_id, None)
            if target_id in order:
                order.remove(target_id)
            continue

        current = base.get(target_id)
        kind_raw = get_str(tbl, "kind")
        if current is None:
            if kind_raw is None:
                raise ValueError(f"targets.{target_id}: 'kind' is required for a new target")
            current = TargetConfig(
                id=target_id,
                kind=TargetKind(kind_raw),
                host="any",
                runner="ubuntu-latest",
            )
            order.append(target_id)
        elif kind_raw is not None:
            current = replace(current, kind=TargetKind(kind_raw))

        base[target_id] = replace(
            current,
            host=get_str(tbl, "host") or current.host,
            runner=get_str(tbl, "runner") or current.runner,
            binary=get_str(tbl, "binary") or current.binary,
            rust_target=get_str(tbl, "rust_target") or current.rust_target,
            system_packages=_or_default(
                get_str_tuple(tbl, "system_packages"), current.system_packages
            ),
            run_tests=_or_default(get_bool(tbl, "run_tests"), current.run_tests),
            strip=_or_default(get_bool(tbl, "strip"), current.strip),
            strip_tool=get_str(tbl, "strip_tool") or current.strip_tool,
            moves_marker=_or_default(get_bool(tbl, "moves_marker"), current.moves_marker),
            dist_dir=get_str(tbl, "dist_dir") or current.dist_dir,
        )

    return tuple(base[i] for i in order)


def validate_config(config: Config) -> Result[Config, ConfigError]:
    """Check cross-field invariants.

    - Native targets must name the binary they publish, and no two may share
      one: the file name is the release slot.
    - The bundle's public URL must match the path the host serves it from,
      otherwise relative asset loading breaks.
    """
    owners: dict[str, str] = {}
    for target in config.targets:
        if not target.is_native:
            continue
        if not target.binary:
            return Err(ConfigError(f"targets.{target.id}: native target needs 'binary'"))
        owner = owners.setdefault(target.binary, target.id)
        if owner != target.id:
            return Err(
                ConfigError(
                    f"targets.{target.id}: binary {target.binary!r}"
                    f" is already published by {owner}",
                    hint="Give each native target its own binary name",
                )
            )

    if config.retry.attempts < 1:
        return Err(ConfigError("retry.attempts must be >= 1"))

    if any(t.is_web for t in config.targets):
        expected = f"/{config.deploy.base_path.strip('/')}/"
        served = urlsplit(config.deploy.public_url).path or "/"
        if served != expected:
            return Err(
                ConfigError(
                    f"deploy.public_url path {served!r} does not match hosting path {expected!r}",
                    hint="Set deploy.public_url to the subpath the static host serves",
                )
            )

    return Ok(config)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load, parse and validate `nightly.toml`.

    Args:
        path: Path to the config file

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        config = Config.from_dict(result.value)
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))

    validated = validate_config(config)
    if isinstance(validated, Err):
        return Err(replace(validated.error, path=path))
    return validated


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Load config when the file exists, otherwise use the defaults."""
    if not path.exists():
        return Ok(Config())
    return load_config(path)
