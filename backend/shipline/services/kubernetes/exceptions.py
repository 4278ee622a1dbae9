"""Kubernetes client exceptions."""


class ClusterError(Exception):
    """Base cluster client exception."""

    def __init__(self, message: str, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode


class PodNotFoundError(ClusterError):
    """No running pod matches the selector."""

    pass
