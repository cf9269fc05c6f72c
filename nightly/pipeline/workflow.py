"""Render the CI workflow that drives the pipeline.

A single workflow covers both triggers (trunk push and the monthly tick).
Each target of the capability table becomes one matrix entry running
`nightly job <target>` on its own runner; `fail-fast` is off so a failing
target never cancels its siblings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from nightly.core.config import Config, TargetConfig

__all__ = ["WORKFLOW_PATH", "render_workflow", "workflow_document"]

WORKFLOW_PATH = Path(".github") / "workflows" / "nightly.yml"

_MATRIX_TARGET = "${{ matrix.target }}"


def _matrix_entry(target: TargetConfig) -> dict[str, str]:
    entry = {"target": target.id, "runner": target.runner, "kind": str(target.kind)}
    if target.rust_target:
        entry["rust_target"] = target.rust_target
    return entry


def _steps(config: Config) -> list[dict[str, Any]]:
    wf = config.workflow
    steps: list[dict[str, Any]] = [
        # The marker ordering check needs trunk history.
        {"uses": "actions/checkout@v4", "with": {"fetch-depth": 0}},
        {
            "uses": "dtolnay/rust-toolchain@stable",
            "with": {"targets": "${{ matrix.rust_target }}"},
        },
        {"uses": "Swatinem/rust-cache@v2"},
        {"uses": "actions/setup-python@v5", "with": {"python-version": wf.python}},
        {"name": "Install nightly", "run": wf.install},
    ]
    if any(t.is_web for t in config.targets):
        steps.append(
            {
                "name": "Install trunk",
                "if": "matrix.kind == 'web'",
                "run": "cargo install --locked trunk",
            }
        )
    steps.append(
        {
            "name": f"Nightly {_MATRIX_TARGET}",
            "run": f"nightly job {_MATRIX_TARGET} --install-deps",
            "env": {"GH_TOKEN": "${{ secrets.GITHUB_TOKEN }}"},
        }
    )
    return steps


def workflow_document(config: Config) -> dict[str, Any]:
    return {
        "name": "nightly",
        "on": {
            "push": {"branches": [config.project.trunk]},
            "schedule": [{"cron": config.workflow.cron}],
            "workflow_dispatch": {},
        },
        "permissions": {"contents": "write"},
        "jobs": {
            "nightly": {
                "name": _MATRIX_TARGET,
                "runs-on": "${{ matrix.runner }}",
                "strategy": {
                    "fail-fast": False,
                    "matrix": {"include": [_matrix_entry(t) for t in config.targets]},
                },
                "steps": _steps(config),
            }
        },
    }


def render_workflow(config: Config) -> str:
    """YAML text of the workflow, keys in declaration order."""
    return yaml.safe_dump(workflow_document(config), sort_keys=False, default_flow_style=False)
