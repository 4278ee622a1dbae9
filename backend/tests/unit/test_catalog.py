"""
Unit Tests: Delivery Pipeline Catalog

Runs the full eleven-stage pipeline against fake docker, kubectl and git.

Test cases:
- Stage order and failure policies
- All stages succeed
- Linter failure leaves the run unstable
- Image push failure stops the run before any deployment
- Dev and prod manifests end up on the same image
- Pod discovery failure
"""

import asyncio

import pytest

from fakes import FakeCluster, FakeCommandRunner
from shipline.notifications import build_notification
from shipline.pipeline.exceptions import PipelineConfigError
from shipline.pipeline.models import FailurePolicy, Outcome, StageStatus
from shipline.pipeline.runner import run_pipeline
from shipline.stages import STAGE_NAMES, build_stages


def run(settings, runner, cluster, notifier):
    return asyncio.run(
        run_pipeline(settings, notifier=notifier, runner=runner, cluster=cluster)
    )


def test_catalog_order_and_policies(settings) -> None:
    stages = build_stages(settings)

    assert [s.name for s in stages] == list(STAGE_NAMES)
    assert len(stages) == 11
    policies = {s.name: s.policy for s in stages}
    assert policies["Static analysis"] is FailurePolicy.IGNORE
    assert all(p is FailurePolicy.PROPAGATE for name, p in policies.items() if name != "Static analysis")


def test_all_stages_succeed(settings, runner, cluster, notifier) -> None:
    result = run(settings, runner, cluster, notifier)

    assert result.outcome is Outcome.SUCCESS
    assert result.executed_stages() == list(STAGE_NAMES)
    assert notifier.calls == [(Outcome.SUCCESS, "web-app", 42)]

    message = build_notification(*notifier.calls[0]).text
    assert "SUCCESSFUL" in message
    assert "42" in message


def test_commands_issued_in_order(settings, runner, cluster, notifier) -> None:
    run(settings, runner, cluster, notifier)

    lines = [" ".join(c) for c in runner.commands]
    assert lines[0] == "git clone --branch master --single-branch https://git.example.com/team/web.git ."
    assert lines[1] == "pylint app/views.py"
    assert lines[2] == "yamllint k8s/dev/deployment.yaml k8s/prod/deployment.yaml"
    assert "docker build -t registry.example.com/web:42 -f Dockerfile ." in lines
    assert "docker push registry.example.com/web:42" in lines
    assert "kubectl delete deployments --all -n dev" in lines
    assert lines[-1] == "kubectl get all --all-namespaces"
    assert lines.index("docker push registry.example.com/web:42") < lines.index(
        "kubectl delete deployments --all -n dev"
    )


def test_data_commands_run_inside_selected_pod(settings, runner, cluster, notifier) -> None:
    run(settings, runner, cluster, notifier)

    assert cluster.lookups == [("app=web", "dev")] * 3
    assert [cmd for _, _, cmd in cluster.execs] == [
        ["python", "manage.py", "flush", "--no-input"],
        ["python", "manage.py", "generate_test_data"],
        ["python", "manage.py", "remove_test_data"],
    ]
    assert {pod for pod, _, _ in cluster.execs} == {"web-7d9f8c-x2k4p"}


def test_linter_failure_is_unstable(settings, notifier) -> None:
    runner = FakeCommandRunner(failures={"pylint": 16})
    cluster = FakeCluster(runner)

    result = run(settings, runner, cluster, notifier)

    assert result.outcome is Outcome.UNSTABLE
    statuses = {s.name: s.status for s in result.stages}
    assert statuses["Static analysis"] is StageStatus.IGNORED_FAILURE
    assert runner.ran("yamllint")
    assert result.executed_stages() == list(STAGE_NAMES)
    assert notifier.calls == [(Outcome.UNSTABLE, "web-app", 42)]


def test_push_failure_stops_before_deployment(settings, notifier) -> None:
    runner = FakeCommandRunner(failures={"docker push": 1})
    cluster = FakeCluster(runner)

    result = run(settings, runner, cluster, notifier)

    assert result.outcome is Outcome.FAILURE
    assert result.executed_stages() == ["Checkout", "Static analysis", "Build & push image"]
    assert all(s.status is StageStatus.SKIPPED for s in result.stages[3:])
    assert not runner.ran("kubectl")
    assert not runner.ran("docker pull")
    assert not runner.ran("docker run")
    assert cluster.lookups == []
    assert notifier.calls == [(Outcome.FAILURE, "web-app", 42)]


def test_dev_and_prod_share_image(settings, runner, cluster, notifier) -> None:
    run(settings, runner, cluster, notifier)

    dev = (settings.workspace / "k8s" / "dev" / "deployment.yaml").read_text()
    prod = (settings.workspace / "k8s" / "prod" / "deployment.yaml").read_text()

    assert "image: registry.example.com/web:42" in dev
    assert 'image: "registry.example.com/web:42"' in prod
    assert "IMAGE_PLACEHOLDER" not in dev


def test_failed_delete_of_old_deployments_is_tolerated(settings, notifier) -> None:
    runner = FakeCommandRunner(failures={"kubectl delete": 1})
    cluster = FakeCluster(runner)

    result = run(settings, runner, cluster, notifier)

    assert result.outcome is Outcome.SUCCESS
    dev = next(s for s in result.stages if s.name == "Deploy to dev")
    assert dev.status is StageStatus.SUCCESS
    assert len(dev.warnings) == 1


def test_missing_pod_fails_the_run(settings, notifier) -> None:
    runner = FakeCommandRunner()
    cluster = FakeCluster(runner, pods={})

    result = run(settings, runner, cluster, notifier)

    assert result.outcome is Outcome.FAILURE
    reset = next(s for s in result.stages if s.name == "Reset persisted data")
    assert reset.status is StageStatus.FAILURE
    assert "app=web" in reset.error
    assert not runner.ran("docker stop")


def test_configuration_error_still_notifies(settings, runner, cluster, notifier) -> None:
    settings.image_repository = ""

    with pytest.raises(PipelineConfigError):
        run(settings, runner, cluster, notifier)

    assert runner.commands == []
    assert notifier.calls == [(Outcome.FAILURE, "web-app", 42)]


def test_registry_credential_is_passed_to_docker(settings, runner, cluster, notifier) -> None:
    settings.registry_credential = "/var/lib/ci/docker-registry"

    run(settings, runner, cluster, notifier)

    assert ["docker", "--config", "/var/lib/ci/docker-registry", "push", "registry.example.com/web:42"] in runner.commands


def test_run_is_recorded_in_history(settings, runner, cluster, notifier) -> None:
    from shipline.storage import load_runs

    result = run(settings, runner, cluster, notifier)

    runs = load_runs(settings.data_dir)
    assert [r.run_id for r in runs] == [result.run_id]
    assert runs[0].outcome is Outcome.SUCCESS


def test_literal_dollar_in_configuration_fails_before_checkout(settings, runner, cluster, notifier) -> None:
    settings.scan.target_url = "http://dev.example.internal/$1"

    with pytest.raises(PipelineConfigError, match="Invalid placeholder"):
        run(settings, runner, cluster, notifier)

    assert runner.commands == []
    assert notifier.calls == [(Outcome.FAILURE, "web-app", 42)]
