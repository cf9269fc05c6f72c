"""What started this pipeline run, and what it is allowed to do.

Gates:
- publish (marker move + release upload): trunk push or scheduled tick
- deploy (live web update): trunk push only, unless `deploy.on_schedule`
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

from nightly.core.config import Config


class TriggerKind(StrEnum):
    PUSH = "push"
    SCHEDULE = "schedule"
    MANUAL = "manual"


_EVENT_KINDS = {
    "push": TriggerKind.PUSH,
    "schedule": TriggerKind.SCHEDULE,
    "workflow_dispatch": TriggerKind.MANUAL,
}


@dataclass(frozen=True, slots=True)
class Trigger:
    kind: TriggerKind
    branch: str | None = None
    sha: str | None = None

    def on_branch(self, branch: str) -> bool:
        return self.branch == branch


def detect_trigger(env: Mapping[str, str]) -> Trigger:
    """Read the trigger from GitHub Actions variables.

    Outside CI (no GITHUB_EVENT_NAME) the run is manual.
    """
    event = env.get("GITHUB_EVENT_NAME", "").strip()
    kind = _EVENT_KINDS.get(event, TriggerKind.MANUAL)

    branch = env.get("GITHUB_REF_NAME", "").strip() or None
    ref = env.get("GITHUB_REF", "").strip()
    if branch is None and ref.startswith("refs/heads/"):
        branch = ref.removeprefix("refs/heads/")
    # Tag pushes also report push events; they are not trunk pushes.
    if ref.startswith("refs/tags/"):
        branch = None

    sha = env.get("GITHUB_SHA", "").strip() or None
    return Trigger(kind=kind, branch=branch, sha=sha)


def should_publish(trigger: Trigger, config: Config) -> bool:
    """Marker move and release upload happen for trunk pushes and scheduled ticks."""
    if not trigger.on_branch(config.project.trunk):
        return False
    return trigger.kind in (TriggerKind.PUSH, TriggerKind.SCHEDULE)


def should_deploy(trigger: Trigger, config: Config) -> bool:
    """Only an actual commit to trunk ships a live web update."""
    if not trigger.on_branch(config.project.trunk):
        return False
    if trigger.kind == TriggerKind.PUSH:
        return True
    return trigger.kind == TriggerKind.SCHEDULE and config.deploy.on_schedule
