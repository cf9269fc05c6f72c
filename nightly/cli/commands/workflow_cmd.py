"""Workflow command - render the CI workflow from the capability table."""

from __future__ import annotations

from pathlib import Path

import typer

from nightly.cli.context import build_context
from nightly.pipeline.workflow import WORKFLOW_PATH, render_workflow


def workflow(
    write: bool = typer.Option(
        False, "--write", help=f"Write to {WORKFLOW_PATH.as_posix()} instead of stdout"
    ),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write to this file"),
) -> None:
    """Render the GitHub Actions workflow that runs `nightly job` per target."""
    ctx = build_context()
    text = render_workflow(ctx.config)

    dest = output or (ctx.project.root / WORKFLOW_PATH if write else None)
    if dest is None:
        typer.echo(text, nl=False)
        return

    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(text, encoding="utf-8")
    ctx.console.success(str(dest))
