"""Pipeline coordinator: one independent job per target.

A job runs its steps strictly in order:

    build -> tests -> strip -> marker ensure-current -> publish   (native)
    build -> bundle -> deploy                                      (web)

Jobs share nothing but the remote marker and release, both updated through
idempotent operations, so they may run in any order or in parallel. A
failing job never cancels or rolls back another one.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Protocol

from nightly.core.config import Config, TargetConfig
from nightly.core.result import Err, Ok, Result
from nightly.output.console import ConsoleProtocol, JobConsole, Style
from nightly.platform.detection import Platform
from nightly.pipeline.deploy import PagesDeployer
from nightly.pipeline.errors import (
    BuildError,
    MarkerSuperseded,
    PipelineError,
    UnknownTarget,
    describe,
)
from nightly.pipeline.marker import TagManager
from nightly.pipeline.model import (
    Artifact,
    JobReport,
    JobStatus,
    PipelineReport,
    TrunkCommit,
)
from nightly.pipeline.release import ReleasePublisher
from nightly.pipeline.trigger import Trigger, should_deploy, should_publish

__all__ = [
    "Builder",
    "BuilderFactory",
    "JobPlan",
    "PipelineCoordinator",
    "plan_jobs",
]


class Builder(Protocol):
    def build(self, commit: TrunkCommit) -> Result[Artifact, BuildError]: ...


BuilderFactory = Callable[[TargetConfig, ConsoleProtocol], Builder]


@dataclass(frozen=True, slots=True)
class JobPlan:
    """What one target job is allowed to do for this trigger."""

    target: TargetConfig
    publish: bool
    deploy: bool

    def describe(self) -> str:
        if self.target.is_web:
            action = "build + deploy" if self.deploy else "build (deploy gated)"
        else:
            action = "build + publish" if self.publish else "build (publish gated)"
        return f"{self.target.id}: {action}"


def plan_jobs(
    config: Config,
    trigger: Trigger,
    selected: Sequence[str] | None = None,
) -> Result[list[JobPlan], UnknownTarget]:
    """Map a trigger to per-target jobs, in capability-table order."""
    if selected:
        for name in selected:
            if config.target(name) is None:
                return Err(UnknownTarget(name=name, available=config.target_ids))
        targets = [t for t in config.targets if t.id in selected]
    else:
        targets = list(config.targets)

    publish = should_publish(trigger, config)
    deploy = should_deploy(trigger, config)
    return Ok(
        [
            JobPlan(
                target=t,
                publish=publish and t.is_native,
                deploy=deploy and t.is_web,
            )
            for t in targets
        ]
    )


class PipelineCoordinator:
    """Runs target jobs and collects their independent reports."""

    def __init__(
        self,
        *,
        builder_factory: BuilderFactory,
        tag_manager: TagManager,
        publisher: ReleasePublisher,
        deployer: PagesDeployer,
        console: ConsoleProtocol,
        host: Platform | None = None,
        dry_run: bool = False,
    ) -> None:
        self._builder_factory = builder_factory
        self._tag_manager = tag_manager
        self._publisher = publisher
        self._deployer = deployer
        self._console = console
        self._host = host
        self._dry_run = dry_run

    def run(
        self,
        plans: Sequence[JobPlan],
        commit: TrunkCommit,
        trigger: Trigger,
        *,
        parallel: bool = True,
    ) -> PipelineReport:
        """Run every planned job; reports keep plan order."""
        if not parallel or len(plans) <= 1:
            reports = [self.run_job(plan, commit, trigger) for plan in plans]
            return PipelineReport(commit=commit, jobs=tuple(reports))

        with ThreadPoolExecutor(max_workers=len(plans), thread_name_prefix="nightly-job") as pool:
            futures = [pool.submit(self.run_job, plan, commit, trigger) for plan in plans]
            reports = [future.result() for future in futures]
        return PipelineReport(commit=commit, jobs=tuple(reports))

    def run_job(self, plan: JobPlan, commit: TrunkCommit, trigger: Trigger) -> JobReport:
        target = plan.target
        console = JobConsole(self._console, target.id)
        console.header(f"{target.id} @ {commit.short}")

        if self._host is not None and not self._host.can_build(target.host):
            note = f"needs a {target.host} host, this is {self._host}"
            console.info(note)
            return JobReport(
                target=target.id, status=JobStatus.SKIPPED, commit=commit, notes=(note,)
            )

        built = self._builder_factory(target, console).build(commit)
        if isinstance(built, Err):
            return self._failed(console, target.id, commit, built.error)
        artifact = built.value

        if target.is_web:
            return self._deploy(plan, artifact, trigger, console)

        if not plan.publish:
            note = "publish gated: not a trunk push or scheduled run"
            console.info(note)
            return JobReport(
                target=target.id,
                status=JobStatus.SKIPPED,
                commit=commit,
                artifact=artifact,
                notes=(note,),
            )

        if self._dry_run:
            note = (
                f"dry-run: would move {self._tag_manager.name} to {commit.short}"
                f" and upload {artifact.slot}"
            )
            console.print(note, Style.DIM)
            return JobReport(
                target=target.id,
                status=JobStatus.SUCCEEDED,
                commit=commit,
                artifact=artifact,
                notes=(note,),
            )

        marker = self._tag_manager.ensure_current(commit, allow_move=target.moves_marker)
        if isinstance(marker, Err):
            error = marker.error
            if isinstance(error, MarkerSuperseded):
                console.warning(describe(error))
                return JobReport(
                    target=target.id,
                    status=JobStatus.SUPERSEDED,
                    commit=commit,
                    artifact=artifact,
                    error=error,
                )
            return self._failed(console, target.id, commit, error, artifact)

        published = self._publisher.publish(artifact)
        if isinstance(published, Err):
            return self._failed(console, target.id, commit, published.error, artifact)

        outcome = published.value
        notes = () if outcome.uploaded else ("release asset already up to date",)
        console.success(f"{outcome.slot} -> {self._publisher.tag}")
        return JobReport(
            target=target.id,
            status=JobStatus.SUCCEEDED,
            commit=commit,
            artifact=artifact,
            published=outcome.slot,
            notes=notes,
        )

    def _deploy(
        self,
        plan: JobPlan,
        artifact: Artifact,
        trigger: Trigger,
        console: ConsoleProtocol,
    ) -> JobReport:
        target_id = plan.target.id
        if not plan.deploy:
            note = "deploy gated: not a trunk push"
            console.info(note)
            return JobReport(
                target=target_id,
                status=JobStatus.SKIPPED,
                commit=artifact.commit,
                artifact=artifact,
                notes=(note,),
            )

        if self._dry_run:
            note = f"dry-run: would push the bundle to {self._deployer.dest_ref}"
            console.print(note, Style.DIM)
            return JobReport(
                target=target_id,
                status=JobStatus.SUCCEEDED,
                commit=artifact.commit,
                artifact=artifact,
                notes=(note,),
            )

        deployed = self._deployer.deploy(artifact, trigger)
        if isinstance(deployed, Err):
            return self._failed(console, target_id, artifact.commit, deployed.error, artifact)

        outcome = deployed.value
        if outcome.deployed:
            console.success(f"bundle -> {self._deployer.dest_ref}")
        return JobReport(
            target=target_id,
            status=JobStatus.SUCCEEDED,
            commit=artifact.commit,
            artifact=artifact,
            deployed=outcome.deployed,
            notes=(outcome.reason,) if outcome.reason else (),
        )

    def _failed(
        self,
        console: ConsoleProtocol,
        target_id: str,
        commit: TrunkCommit,
        error: PipelineError,
        artifact: Artifact | None = None,
    ) -> JobReport:
        console.error(describe(error))
        return JobReport(
            target=target_id,
            status=JobStatus.FAILED,
            commit=commit,
            artifact=artifact,
            error=error,
        )
