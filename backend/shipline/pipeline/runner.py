"""
PipelineRunner Orchestrator

Runs stages strictly in declaration order against one Environment.

Responsibilities:
- Refuse to start when the stage list is empty or a referenced variable is unset
- Execute each stage, recording its result
- Continue past failures of stages with the ignore policy
- Skip the remaining stages after a propagating failure
- Classify the run exactly once when it ends

run_pipeline() wraps a run so that the chat notification is sent exactly
once however the run terminates, then records the run in the history ledger.

Usage:
    result = await run_pipeline(get_settings())
    print(result.outcome)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from datetime import datetime, timezone

from shipline.config import Settings
from shipline.environment import Environment
from shipline.notifications import Notifier
from shipline.observability import trace_span
from shipline.services.kubernetes import ClusterClient, create_cluster_client
from shipline.services.shell import CommandRunner
from shipline.stages.catalog import build_stages
from shipline.storage.history import record_run

from .exceptions import PipelineConfigError
from .models import (
    FailurePolicy,
    Outcome,
    PipelineRunResult,
    StageResult,
    StageStatus,
    compute_outcome,
)
from .stage import Stage, StageContext

logger = logging.getLogger(__name__)


class PipelineRunner:
    """Sequential stage orchestration."""

    def __init__(self, runner: CommandRunner, cluster: ClusterClient):
        self.runner = runner
        self.cluster = cluster

    def validate(self, stages: Sequence[Stage], env: Environment) -> None:
        """Check preconditions before any stage touches external state."""
        if not stages:
            raise PipelineConfigError("Pipeline has no stages")

        referenced: set[str] = set()
        for stage in stages:
            referenced |= stage.references()

        missing = env.unresolved(referenced)
        if missing:
            raise PipelineConfigError(
                f"Unset environment variables referenced by stages: {', '.join(missing)}"
            )

    async def run(self, stages: Sequence[Stage], env: Environment) -> PipelineRunResult:
        """Execute ``stages`` in order and classify the run."""
        self.validate(stages, env)

        started_at = datetime.now(timezone.utc)
        ctx = StageContext(env=env, runner=self.runner, cluster=self.cluster)
        results = [StageResult(name=s.name, policy=s.policy) for s in stages]
        total = len(stages)

        logger.info(f"Pipeline starting: {env.job_name} #{env.build_number} ({total} stages)")

        for i, (stage, result) in enumerate(zip(stages, results), 1):
            logger.info(f"Stage {i}/{total}: {stage.name}")
            result.status = StageStatus.RUNNING
            result.started_at = datetime.now(timezone.utc)
            start = time.monotonic()

            try:
                with trace_span("stage {stage}", stage=stage.name, policy=stage.policy.value):
                    result.warnings = await stage.execute(ctx)
            except Exception as e:
                result.duration_seconds = time.monotonic() - start
                result.error = str(e)
                if stage.policy is FailurePolicy.IGNORE:
                    result.status = StageStatus.IGNORED_FAILURE
                    logger.warning(f"Stage '{stage.name}' failed (ignored): {e}")
                    continue

                result.status = StageStatus.FAILURE
                logger.error(f"Stage '{stage.name}' failed: {e}", exc_info=True)
                break

            result.duration_seconds = time.monotonic() - start
            result.status = StageStatus.SUCCESS
            logger.info(f"Stage '{stage.name}' complete in {result.duration_seconds:.1f}s")

        for result in results:
            if result.status is StageStatus.PENDING:
                result.status = StageStatus.SKIPPED

        skipped = [r.name for r in results if r.status is StageStatus.SKIPPED]
        if skipped:
            logger.info(f"Skipped stages: {', '.join(skipped)}")

        run_result = PipelineRunResult(
            job_name=env.job_name,
            build_number=env.build_number,
            outcome=compute_outcome(results),
            stages=results,
            started_at=started_at,
        )
        logger.info(
            f"Pipeline finished: {run_result.outcome.value} "
            f"in {run_result.duration_seconds:.1f}s"
        )
        return run_result


async def run_pipeline(
    settings: Settings,
    build_number: int | None = None,
    stages: Sequence[Stage] | None = None,
    notifier: Notifier | None = None,
    runner: CommandRunner | None = None,
    cluster: ClusterClient | None = None,
) -> PipelineRunResult:
    """Run the pipeline once and always notify the outcome.

    If the run raises (configuration error or anything unexpected) a failure
    notification is still sent before the exception propagates.
    """
    number = settings.build_number if build_number is None else build_number
    notifier = notifier or Notifier.from_settings(settings)
    outcome = Outcome.FAILURE
    result: PipelineRunResult | None = None

    try:
        env = Environment.from_settings(settings, build_number=number)
        command_runner = runner or CommandRunner(
            timeout_seconds=settings.commands.command_timeout_seconds,
            tail_lines=settings.commands.stderr_tail_lines,
        )
        cluster_client = cluster or create_cluster_client(
            command_runner,
            kubeconfig=env.cluster_credential,
            context=settings.kube_context,
        )
        if stages is None:
            stages = build_stages(settings)

        with trace_span("pipeline {job_name} #{build_number}", job_name=env.job_name, build_number=number):
            result = await PipelineRunner(command_runner, cluster_client).run(stages, env)
        outcome = result.outcome
    finally:
        await notifier.notify(outcome, settings.job_name, number)

    try:
        record_run(result, settings.data_dir)
    except OSError as e:
        logger.error(f"Failed to record run {result.run_id}: {e}")

    return result
