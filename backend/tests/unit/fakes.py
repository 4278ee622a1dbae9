"""Fakes standing in for git, docker, kubectl and the chat transport."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

from shipline.notifications import Notifier
from shipline.pipeline.exceptions import CommandFailedError
from shipline.pipeline.models import Outcome
from shipline.services.kubernetes import ClusterClient, PodId, PodNotFoundError
from shipline.services.shell import CommandResult, CommandRunner
from shipline.services.telegram import DeliveryResult

DEV_MANIFEST = """apiVersion: apps/v1
kind: Deployment
metadata:
  name: web
spec:
  template:
    spec:
      containers:
        - name: web
          image: IMAGE_PLACEHOLDER
          ports:
            - containerPort: 8000
"""

PROD_MANIFEST = """apiVersion: apps/v1
kind: Deployment
metadata:
  name: web
spec:
  template:
    spec:
      containers:
        - name: web
          image: "registry.example.com/web:17"
"""


def populate_checkout(argv: list[str], cwd: Path) -> None:
    """Stand-in for git clone: lay out a small application repository."""
    (cwd / "app").mkdir(parents=True, exist_ok=True)
    (cwd / "app" / "views.py").write_text("def index():\n    return 'ok'\n")
    (cwd / "k8s" / "dev").mkdir(parents=True, exist_ok=True)
    (cwd / "k8s" / "prod").mkdir(parents=True, exist_ok=True)
    (cwd / "k8s" / "dev" / "deployment.yaml").write_text(DEV_MANIFEST)
    (cwd / "k8s" / "prod" / "deployment.yaml").write_text(PROD_MANIFEST)


class FakeCommandRunner(CommandRunner):
    """Records commands instead of executing them.

    ``failures`` maps a command prefix (e.g. "docker push") to the exit
    status it should report; ``hooks`` maps a prefix to a side effect.
    """

    def __init__(
        self,
        failures: dict[str, int] | None = None,
        hooks: dict[str, Callable[[list[str], Path], None]] | None = None,
    ):
        super().__init__()
        self.failures = failures or {}
        self.hooks = hooks if hooks is not None else {"git clone": populate_checkout}
        self.commands: list[list[str]] = []

    def _match(self, table: dict, argv: list[str]):
        line = " ".join(argv)
        for prefix, value in table.items():
            if line.startswith(prefix):
                return value
        return None

    async def run(
        self,
        command: Sequence[str],
        cwd: Path | None = None,
        check: bool = True,
    ) -> CommandResult:
        argv = list(command)
        self.commands.append(argv)

        hook = self._match(self.hooks, argv)
        if hook is not None:
            hook(argv, cwd or Path.cwd())

        returncode = self._match(self.failures, argv) or 0
        result = CommandResult(command=argv, returncode=returncode)
        if returncode and check:
            raise CommandFailedError(
                f"'{' '.join(argv)}' exited with status {returncode}",
                returncode=returncode,
            )
        return result

    def ran(self, prefix: str) -> bool:
        return any(" ".join(c).startswith(prefix) for c in self.commands)


class FakeCluster(ClusterClient):
    """ClusterClient that records kubectl usage through the fake runner."""

    def __init__(self, runner: FakeCommandRunner, pods: dict[str, str] | None = None):
        self.runner = runner
        self.pods = pods if pods is not None else {"app=web": "web-7d9f8c-x2k4p"}
        self.lookups: list[tuple[str, str]] = []
        self.execs: list[tuple[str, str, list[str]]] = []

    async def run(self, args: Sequence[str]) -> CommandResult:
        return await self.runner.run(["kubectl", *args])

    async def find_pod_by_label(self, selector: str, namespace: str) -> PodId:
        self.lookups.append((selector, namespace))
        if selector not in self.pods:
            raise PodNotFoundError(f"No running pod matches '{selector}' in namespace {namespace}")
        return PodId(self.pods[selector])

    async def exec_in_pod(self, pod: PodId, namespace: str, command: Sequence[str]) -> CommandResult:
        self.execs.append((pod, namespace, list(command)))
        return await self.runner.run(["kubectl", "exec", "-n", namespace, pod, "--", *command])


class RecordingNotifier(Notifier):
    """Notifier that remembers every call instead of sending."""

    def __init__(self):
        super().__init__(client_factory=None, enabled=False)
        self.calls: list[tuple[Outcome, str, int]] = []

    async def notify(self, outcome: Outcome, job_name: str, build_number: int) -> None:
        self.calls.append((outcome, job_name, build_number))


class FakeChatClient:
    """Async context manager mimicking TelegramClient.send."""

    def __init__(self, deliver: bool = True, raise_on_send: Exception | None = None):
        self.deliver = deliver
        self.raise_on_send = raise_on_send
        self.messages: list[str] = []
        self.silent: list[bool] = []

    async def __aenter__(self) -> FakeChatClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None

    async def send(self, text: str, silent: bool = False) -> DeliveryResult:
        if self.raise_on_send is not None:
            raise self.raise_on_send
        self.messages.append(text)
        self.silent.append(silent)
        if self.deliver:
            return DeliveryResult(delivered=True, chat_id="-100123", message_id=len(self.messages))
        return DeliveryResult(delivered=False, chat_id="-100123", error="Forbidden: bot was kicked")
