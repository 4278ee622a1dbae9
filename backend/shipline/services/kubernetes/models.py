"""Kubernetes object models."""

from typing import NewType

from pydantic import BaseModel

PodId = NewType("PodId", str)


class Pod(BaseModel):
    """Minimal view of a pod returned by ``kubectl get pods -o json``."""

    name: str
    namespace: str
    phase: str = "Unknown"
    terminating: bool = False

    @property
    def is_ready_target(self) -> bool:
        """Whether commands can be executed in this pod."""
        return self.phase == "Running" and not self.terminating
