"""Step types that make up a stage body.

Each step wraps one external effect. Arguments may reference environment
variables as ``${NAME}``; they are resolved when the step executes.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from shipline.environment import template_references
from shipline.manifests import rewrite_image

if TYPE_CHECKING:
    from .stage import StageContext

logger = logging.getLogger(__name__)


class Step(ABC):
    """One unit of work inside a stage."""

    ignore_failure: bool = False

    @property
    @abstractmethod
    def description(self) -> str:
        """Short human-readable label used in logs and results."""

    def references(self) -> set[str]:
        """Environment variables this step needs."""
        return set()

    @abstractmethod
    async def execute(self, ctx: StageContext) -> None:
        """Perform the step; raise on failure."""


def _workspace_path(ctx: StageContext, relative: str | None) -> Path:
    workspace = ctx.env.workspace
    if not relative:
        return workspace
    return workspace / ctx.env.resolve(relative)


@dataclass(frozen=True)
class Command(Step):
    """Run an external program inside the workspace.

    When ``globs`` is set the files matching them (relative to the
    workspace) are appended to the arguments; with no match the program is
    not run.
    """

    argv: tuple[str, ...]
    globs: tuple[str, ...] = ()
    cwd: str | None = None
    ignore_failure: bool = False

    @property
    def description(self) -> str:
        return " ".join(self.argv)

    def references(self) -> set[str]:
        return template_references([*self.argv, self.cwd or ""])

    async def execute(self, ctx: StageContext) -> None:
        argv = ctx.env.resolve_all(self.argv)
        cwd = _workspace_path(ctx, self.cwd)

        if self.globs:
            matches = sorted(
                {str(p.relative_to(cwd)) for pattern in self.globs for p in cwd.glob(pattern) if p.is_file()}
            )
            if not matches:
                logger.info(f"No files match {list(self.globs)}; skipping '{argv[0]}'")
                return
            argv += matches

        await ctx.runner.run(argv, cwd=cwd)


@dataclass(frozen=True)
class Kubectl(Step):
    """Run a cluster-control command through the cluster client."""

    args: tuple[str, ...]
    ignore_failure: bool = False

    @property
    def description(self) -> str:
        return "kubectl " + " ".join(self.args)

    def references(self) -> set[str]:
        return template_references(self.args)

    async def execute(self, ctx: StageContext) -> None:
        await ctx.cluster.run(ctx.env.resolve_all(self.args))


@dataclass(frozen=True)
class PodExec(Step):
    """Locate a pod by label selector and run a command inside it."""

    selector: str
    namespace: str
    command: tuple[str, ...]
    ignore_failure: bool = False

    @property
    def description(self) -> str:
        return f"exec [{self.selector}] " + " ".join(self.command)

    def references(self) -> set[str]:
        return template_references(self.command)

    async def execute(self, ctx: StageContext) -> None:
        pod = await ctx.cluster.find_pod_by_label(self.selector, self.namespace)
        await ctx.cluster.exec_in_pod(pod, self.namespace, ctx.env.resolve_all(self.command))


@dataclass(frozen=True)
class ClearWorkspace(Step):
    """Empty the workspace directory, creating it if needed."""

    ignore_failure: bool = False

    @property
    def description(self) -> str:
        return "clear workspace"

    async def execute(self, ctx: StageContext) -> None:
        workspace = ctx.env.workspace
        workspace.mkdir(parents=True, exist_ok=True)
        for child in workspace.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
        logger.info(f"Cleared workspace {workspace}")


@dataclass(frozen=True)
class RewriteManifest(Step):
    """Point a manifest's image reference at this run's image."""

    manifest: str
    placeholder: str = ""
    ignore_failure: bool = False

    @property
    def description(self) -> str:
        return f"rewrite image in {self.manifest}"

    def references(self) -> set[str]:
        return {"IMAGE_REPOSITORY", "IMAGE_TAG"} | template_references([self.manifest])

    async def execute(self, ctx: StageContext) -> None:
        rewrite_image(
            _workspace_path(ctx, self.manifest),
            repository=ctx.env.image_repository,
            image=ctx.env.image,
            placeholder=self.placeholder,
        )


@dataclass(frozen=True)
class Wait(Step):
    """Fixed delay."""

    seconds: float
    ignore_failure: bool = False

    @property
    def description(self) -> str:
        return f"wait {self.seconds:g}s"

    async def execute(self, ctx: StageContext) -> None:
        logger.info(f"Waiting {self.seconds:g}s")
        await asyncio.sleep(self.seconds)

