"""Trigger detection and the publish/deploy gates."""

from __future__ import annotations

import pytest

from nightly.core.config import Config
from nightly.pipeline.trigger import (
    Trigger,
    TriggerKind,
    detect_trigger,
    should_deploy,
    should_publish,
)

SHA = "c1" * 20


class TestDetectTrigger:
    def test_push_to_trunk(self) -> None:
        trigger = detect_trigger(
            {
                "GITHUB_EVENT_NAME": "push",
                "GITHUB_REF": "refs/heads/main",
                "GITHUB_REF_NAME": "main",
                "GITHUB_SHA": SHA,
            }
        )
        assert trigger == Trigger(kind=TriggerKind.PUSH, branch="main", sha=SHA)

    def test_schedule(self) -> None:
        trigger = detect_trigger({"GITHUB_EVENT_NAME": "schedule", "GITHUB_REF": "refs/heads/main"})
        assert trigger.kind == TriggerKind.SCHEDULE
        assert trigger.branch == "main"

    def test_tag_push_has_no_branch(self) -> None:
        trigger = detect_trigger(
            {
                "GITHUB_EVENT_NAME": "push",
                "GITHUB_REF": "refs/tags/nightly",
                "GITHUB_REF_NAME": "nightly",
            }
        )
        assert trigger.branch is None

    def test_outside_ci_is_manual(self) -> None:
        assert detect_trigger({}) == Trigger(kind=TriggerKind.MANUAL)

    def test_unknown_event_is_manual(self) -> None:
        trigger = detect_trigger(
            {"GITHUB_EVENT_NAME": "pull_request", "GITHUB_REF_NAME": "1/merge"}
        )
        assert trigger.kind == TriggerKind.MANUAL


@pytest.mark.parametrize(
    ("kind", "branch", "publish", "deploy"),
    [
        (TriggerKind.PUSH, "main", True, True),
        (TriggerKind.SCHEDULE, "main", True, False),
        (TriggerKind.MANUAL, "main", False, False),
        (TriggerKind.PUSH, "feature", False, False),
        (TriggerKind.SCHEDULE, None, False, False),
    ],
)
def test_gates(kind: TriggerKind, branch: str | None, publish: bool, deploy: bool) -> None:
    config = Config()
    trigger = Trigger(kind=kind, branch=branch)
    assert should_publish(trigger, config) is publish
    assert should_deploy(trigger, config) is deploy


def test_scheduled_deploy_can_be_enabled() -> None:
    config = Config.from_dict({"deploy": {"on_schedule": True}})
    assert should_deploy(Trigger(kind=TriggerKind.SCHEDULE, branch="main"), config)


def test_custom_trunk() -> None:
    config = Config.from_dict({"project": {"trunk": "trunk"}})
    assert should_publish(Trigger(kind=TriggerKind.PUSH, branch="trunk"), config)
    assert not should_publish(Trigger(kind=TriggerKind.PUSH, branch="main"), config)
