"""Kubernetes cluster access over the kubectl CLI."""

from .client import ClusterClient, KubectlClusterClient, create_cluster_client
from .config import KubectlConfig
from .exceptions import ClusterError, PodNotFoundError
from .models import Pod, PodId

__all__ = [
    "ClusterClient",
    "KubectlClusterClient",
    "create_cluster_client",
    "KubectlConfig",
    "ClusterError",
    "PodNotFoundError",
    "Pod",
    "PodId",
]
