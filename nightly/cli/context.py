from __future__ import annotations

import os
from dataclasses import dataclass

import typer

from nightly.core.config import Config, load_config_or_default
from nightly.core.errors import ErrorCode
from nightly.core.result import Err
from nightly.core.workspace import Project, detect_project
from nightly.output.console import ConsoleProtocol, RichConsole, Style
from nightly.platform.detection import Platform, detect_platform


@dataclass(frozen=True, slots=True)
class CLIContext:
    project: Project
    platform: Platform
    config: Config
    console: ConsoleProtocol
    env: dict[str, str]


def build_context() -> CLIContext:
    console = RichConsole()

    project_result = detect_project()
    if isinstance(project_result, Err):
        typer.echo(f"error: {project_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    project = project_result.value

    config_result = load_config_or_default(project.config_path)
    if isinstance(config_result, Err):
        error = config_result.error
        console.error(error.message)
        if error.hint:
            console.print(f"hint: {error.hint}", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(
        project=project,
        platform=detect_platform(),
        config=config_result.value,
        console=console,
        env=dict(os.environ),
    )
