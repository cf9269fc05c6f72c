from __future__ import annotations

from typing import Any

import yaml

from nightly.core.config import Config, WorkflowConfig, default_targets
from nightly.pipeline.workflow import WORKFLOW_PATH, render_workflow


def _load(config: Config) -> dict[str, Any]:
    return yaml.safe_load(render_workflow(config))


def test_triggers_cover_push_schedule_and_dispatch() -> None:
    doc = _load(Config())

    # PyYAML quotes the key so YAML 1.1 readers do not turn it into a bool.
    triggers = doc["on"]
    assert triggers["push"] == {"branches": ["main"]}
    assert triggers["schedule"] == [{"cron": "0 0 1 * *"}]
    assert triggers["workflow_dispatch"] == {}
    assert doc["permissions"] == {"contents": "write"}


def test_one_matrix_entry_per_target() -> None:
    job = _load(Config())["jobs"]["nightly"]

    assert job["strategy"]["fail-fast"] is False
    assert job["strategy"]["matrix"]["include"] == [
        {"target": "linux", "runner": "ubuntu-latest", "kind": "native"},
        {"target": "windows", "runner": "windows-latest", "kind": "native"},
        {
            "target": "web",
            "runner": "ubuntu-latest",
            "kind": "web",
            "rust_target": "wasm32-unknown-unknown",
        },
    ]
    assert job["runs-on"] == "${{ matrix.runner }}"


def test_steps_run_the_target_job() -> None:
    steps = _load(Config())["jobs"]["nightly"]["steps"]

    assert steps[0] == {"uses": "actions/checkout@v4", "with": {"fetch-depth": 0}}
    last = steps[-1]
    assert last["run"] == "nightly job ${{ matrix.target }} --install-deps"
    assert last["env"] == {"GH_TOKEN": "${{ secrets.GITHUB_TOKEN }}"}
    trunk = [s for s in steps if s.get("name") == "Install trunk"]
    assert trunk and trunk[0]["if"] == "matrix.kind == 'web'"


def test_no_bundler_step_without_web_target() -> None:
    config = Config(targets=default_targets()[:2])
    steps = _load(config)["jobs"]["nightly"]["steps"]

    assert all(s.get("name") != "Install trunk" for s in steps)


def test_workflow_settings_flow_through() -> None:
    workflow = WorkflowConfig(cron="15 3 * * 1", python="3.13", install="pip install -e .")
    config = Config(workflow=workflow)
    doc = _load(config)

    assert doc["on"]["schedule"] == [{"cron": "15 3 * * 1"}]
    steps = doc["jobs"]["nightly"]["steps"]
    assert {"uses": "actions/setup-python@v5", "with": {"python-version": "3.13"}} in steps
    assert {"name": "Install nightly", "run": "pip install -e ."} in steps


def test_keys_keep_declaration_order() -> None:
    text = render_workflow(Config())
    assert text.index("name: nightly") < text.index("permissions:") < text.index("jobs:")


def test_workflow_path() -> None:
    assert WORKFLOW_PATH.as_posix() == ".github/workflows/nightly.yml"
