"""Stage definition and the collaborators a stage body runs against."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from shipline.environment import Environment
from shipline.services.kubernetes import ClusterClient
from shipline.services.shell import CommandRunner

from .exceptions import StageExecutionError
from .models import FailurePolicy
from .steps import Step

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageContext:
    """Everything a step may touch during one run."""

    env: Environment
    runner: CommandRunner
    cluster: ClusterClient


@dataclass(frozen=True)
class Stage:
    """An ordered, named unit of work with a failure policy."""

    name: str
    steps: Sequence[Step] = field(default_factory=tuple)
    policy: FailurePolicy = FailurePolicy.PROPAGATE

    def references(self) -> set[str]:
        """Environment variables referenced anywhere in the body."""
        names: set[str] = set()
        for step in self.steps:
            names |= step.references()
        return names

    async def execute(self, ctx: StageContext) -> list[str]:
        """Run every step in order.

        A propagate-policy stage stops at the first failing step. An
        ignore-policy stage runs all of its steps and raises once at the end
        if any failed, so each linter of a static-analysis stage reports.

        Returns:
            Warnings for steps whose failure was ignored

        Raises:
            StageExecutionError: Step failure not marked ignore_failure
        """
        warnings: list[str] = []
        failures: list[StageExecutionError] = []
        for step in self.steps:
            logger.debug(f"[{self.name}] {step.description}")
            try:
                await step.execute(ctx)
            except Exception as e:
                if step.ignore_failure:
                    message = f"{step.description}: {e}"
                    logger.warning(f"[{self.name}] Ignoring failed step {message}")
                    warnings.append(message)
                    continue

                if isinstance(e, StageExecutionError):
                    e.step = e.step or step.description
                    error = e
                else:
                    error = StageExecutionError(f"{step.description}: {e}", step=step.description)
                    error.__cause__ = e

                if self.policy is not FailurePolicy.IGNORE:
                    raise error
                logger.warning(f"[{self.name}] Step failed, continuing: {error}")
                failures.append(error)

        if len(failures) == 1:
            raise failures[0]
        if failures:
            raise StageExecutionError(
                "; ".join(str(f) for f in failures),
                step=", ".join(f.step for f in failures if f.step),
            )
        return warnings
