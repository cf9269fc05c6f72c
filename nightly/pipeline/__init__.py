"""Release orchestration: build targets, move the marker, publish, deploy."""

from nightly.pipeline.builder import TargetBuilder
from nightly.pipeline.coordinator import JobPlan, PipelineCoordinator, plan_jobs
from nightly.pipeline.deploy import DeployOutcome, PagesDeployer
from nightly.pipeline.marker import GitMarkerStore, TagManager
from nightly.pipeline.model import (
    Artifact,
    ArtifactKind,
    JobReport,
    JobStatus,
    MarkerState,
    MarkerStatus,
    PipelineReport,
    ReleaseRecord,
    TrunkCommit,
)
from nightly.pipeline.release import GhReleaseClient, PublishOutcome, ReleasePublisher
from nightly.pipeline.retry import RetryPolicy
from nightly.pipeline.trigger import Trigger, TriggerKind, detect_trigger

__all__ = [
    "Artifact",
    "ArtifactKind",
    "DeployOutcome",
    "GhReleaseClient",
    "GitMarkerStore",
    "JobPlan",
    "JobReport",
    "JobStatus",
    "MarkerState",
    "MarkerStatus",
    "PagesDeployer",
    "PipelineCoordinator",
    "PipelineReport",
    "PublishOutcome",
    "ReleasePublisher",
    "ReleaseRecord",
    "RetryPolicy",
    "TagManager",
    "TargetBuilder",
    "Trigger",
    "TriggerKind",
    "TrunkCommit",
    "detect_trigger",
    "plan_jobs",
]
