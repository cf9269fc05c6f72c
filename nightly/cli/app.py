from __future__ import annotations

import os
from pathlib import Path

import typer

from nightly import __version__
from nightly.cli.commands.build_cmd import build
from nightly.cli.commands.deploy_cmd import deploy
from nightly.cli.commands.marker_cmd import marker_app
from nightly.cli.commands.release_cmd import publish, release_app
from nightly.cli.commands.run_cmd import job, run
from nightly.cli.commands.targets_cmd import plan, targets
from nightly.cli.commands.workflow_cmd import workflow
from nightly.core.errors import ErrorCode
from nightly.core.workspace import ROOT_ENV_VAR

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(targets)
app.command()(plan)
app.command()(build)
app.command()(job)
app.command()(run)
app.command()(publish)
app.command()(deploy)
app.command()(workflow)

# Sub-apps
app.add_typer(marker_app, name="marker", help="Inspect or move the nightly marker.")
app.add_typer(release_app, name="release", help="Inspect the nightly release.")


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    root: Path | None = typer.Option(
        None,
        "--root",
        help="Project root (overrides auto detection)",
    ),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if root is not None:
        try:
            resolved = root.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --root: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not resolved.is_dir():
            typer.echo(f"error: --root '{resolved}' is not a directory", err=True)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

        os.environ[ROOT_ENV_VAR] = str(resolved)


def main() -> None:
    app()
