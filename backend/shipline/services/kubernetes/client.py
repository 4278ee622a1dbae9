"""Cluster client backed by the kubectl CLI."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from shipline.services.shell import CommandResult, CommandRunner

from .config import KubectlConfig
from .exceptions import ClusterError, PodNotFoundError
from .models import Pod, PodId

logger = logging.getLogger(__name__)


class ClusterClient(ABC):
    """Operations the pipeline performs against the cluster."""

    @abstractmethod
    async def run(self, args: Sequence[str]) -> CommandResult:
        """Run an arbitrary cluster-control command."""

    @abstractmethod
    async def find_pod_by_label(self, selector: str, namespace: str) -> PodId:
        """Return the first running pod matching a label selector."""

    @abstractmethod
    async def exec_in_pod(
        self,
        pod: PodId,
        namespace: str,
        command: Sequence[str],
    ) -> CommandResult:
        """Execute a command inside a pod."""


class KubectlClusterClient(ClusterClient):
    """ClusterClient implementation shelling out to kubectl."""

    def __init__(self, runner: CommandRunner, config: KubectlConfig | None = None):
        self.runner = runner
        self.config = config or KubectlConfig()

    async def run(self, args: Sequence[str]) -> CommandResult:
        return await self.runner.run(self.config.base_command() + list(args))

    async def list_pods(self, selector: str, namespace: str) -> list[Pod]:
        """List pods matching ``selector`` in ``namespace``."""
        result = await self.run(
            ["get", "pods", "-n", namespace, "-l", selector, "-o", "json"]
        )
        try:
            payload = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as e:
            raise ClusterError(f"Unparseable pod listing for '{selector}': {e}")

        pods = []
        for item in payload.get("items", []):
            metadata = item.get("metadata", {})
            pods.append(
                Pod(
                    name=metadata.get("name", ""),
                    namespace=metadata.get("namespace", namespace),
                    phase=item.get("status", {}).get("phase", "Unknown"),
                    terminating=bool(metadata.get("deletionTimestamp")),
                )
            )
        return pods

    async def find_pod_by_label(self, selector: str, namespace: str) -> PodId:
        pods = await self.list_pods(selector, namespace)
        for pod in pods:
            if pod.is_ready_target:
                logger.info(f"Selected pod {pod.name} for '{selector}' in {namespace}")
                return PodId(pod.name)

        raise PodNotFoundError(
            f"No running pod matches '{selector}' in namespace {namespace} "
            f"({len(pods)} found)"
        )

    async def exec_in_pod(
        self,
        pod: PodId,
        namespace: str,
        command: Sequence[str],
    ) -> CommandResult:
        return await self.run(["exec", "-n", namespace, pod, "--", *command])


def create_cluster_client(
    runner: CommandRunner,
    kubeconfig: str = "",
    context: str = "",
) -> KubectlClusterClient:
    """Create a KubectlClusterClient instance."""
    return KubectlClusterClient(
        runner=runner,
        config=KubectlConfig(kubeconfig=kubeconfig, context=context),
    )
