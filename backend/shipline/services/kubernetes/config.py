"""Kubernetes CLI config."""

from pydantic import BaseModel


class KubectlConfig(BaseModel):
    """Configuration for the kubectl-backed cluster client."""

    binary: str = "kubectl"
    kubeconfig: str = ""
    context: str = ""

    def base_command(self) -> list[str]:
        """kubectl invocation prefix with credential and context flags."""
        command = [self.binary]
        if self.kubeconfig:
            command += ["--kubeconfig", self.kubeconfig]
        if self.context:
            command += ["--context", self.context]
        return command
