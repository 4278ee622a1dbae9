"""The delivery pipeline: eleven stages from checkout to production."""

from __future__ import annotations

from shipline.config import Settings
from shipline.pipeline.models import FailurePolicy
from shipline.pipeline.stage import Stage
from shipline.pipeline.steps import (
    ClearWorkspace,
    Command,
    Kubectl,
    PodExec,
    RewriteManifest,
    Wait,
)

STAGE_NAMES = (
    "Checkout",
    "Static analysis",
    "Build & push image",
    "Deploy to dev",
    "Dynamic security scan",
    "Reset persisted data",
    "Generate test data",
    "Acceptance tests",
    "Remove test data",
    "Deploy to prod",
    "Cluster sanity check",
)


def _docker(settings: Settings, *args: str) -> tuple[str, ...]:
    """docker invocation authenticated with the registry credential handle."""
    if settings.registry_credential:
        return ("docker", "--config", "${REGISTRY_CREDENTIAL}", *args)
    return ("docker", *args)


def checkout_stage(settings: Settings) -> Stage:
    return Stage(
        name="Checkout",
        steps=(
            ClearWorkspace(),
            Command(
                (
                    "git", "clone",
                    "--branch", settings.source.branch,
                    "--single-branch",
                    "${SOURCE_REPO_URL}",
                    ".",
                )
            ),
        ),
    )


def static_analysis_stage(settings: Settings) -> Stage:
    lint = settings.lint
    return Stage(
        name="Static analysis",
        steps=(
            Command(tuple(lint.python_linter), globs=tuple(lint.python_globs)),
            Command(tuple(lint.yaml_linter), globs=tuple(lint.yaml_globs)),
        ),
        policy=FailurePolicy.IGNORE,
    )


def build_and_push_stage(settings: Settings) -> Stage:
    image = settings.image
    return Stage(
        name="Build & push image",
        steps=(
            Command(
                _docker(
                    settings,
                    "build",
                    "-t", "${IMAGE}",
                    "-f", image.dockerfile,
                    image.build_context,
                )
            ),
            Command(_docker(settings, "push", "${IMAGE}")),
        ),
    )


def deploy_stage(settings: Settings, name: str, manifest: str, namespace: str, clean: bool) -> Stage:
    steps = []
    if clean:
        # Nothing to delete on a fresh namespace
        steps.append(Kubectl(("delete", "deployments", "--all", "-n", namespace), ignore_failure=True))
    steps += [
        RewriteManifest(manifest, placeholder=settings.deploy.image_placeholder),
        Kubectl(("apply", "-f", f"${{WORKSPACE}}/{manifest}", "-n", namespace)),
    ]
    return Stage(name=name, steps=tuple(steps))


def security_scan_stage(settings: Settings) -> Stage:
    scan = settings.scan
    return Stage(
        name="Dynamic security scan",
        steps=(
            Command(("docker", "pull", scan.scanner_image)),
            Command(
                (
                    "docker", "run", "--rm",
                    "-v", f"${{WORKSPACE}}:{scan.mount_path}:rw",
                    scan.scanner_image,
                    "zap-baseline.py",
                    "-t", scan.target_url,
                    "-r", scan.report_file,
                )
            ),
        ),
    )


def pod_command_stage(settings: Settings, name: str, command: list[str], delay: float = 0) -> Stage:
    steps = []
    if delay:
        steps.append(Wait(delay))
    steps.append(
        PodExec(
            selector=settings.data.pod_selector,
            namespace=settings.deploy.dev_namespace,
            command=tuple(command),
        )
    )
    return Stage(name=name, steps=tuple(steps))


def acceptance_stage(settings: Settings) -> Stage:
    tests = settings.acceptance
    image = f"{tests.image_name}:${{BUILD_NUMBER}}"
    return Stage(
        name="Acceptance tests",
        steps=(
            Command(("docker", "stop", tests.container_name), ignore_failure=True),
            Command(("docker", "rm", tests.container_name), ignore_failure=True),
            Command(("docker", "build", "-t", image, tests.build_context)),
            Command(
                (
                    "docker", "run",
                    "--name", tests.container_name,
                    "--network", tests.network,
                    image,
                )
            ),
        ),
    )


def sanity_check_stage(settings: Settings) -> Stage:
    return Stage(
        name="Cluster sanity check",
        steps=(Kubectl(("get", "all", "--all-namespaces")),),
    )


def build_stages(settings: Settings) -> list[Stage]:
    """Build the ordered stage list from configuration."""
    deploy = settings.deploy
    data = settings.data
    return [
        checkout_stage(settings),
        static_analysis_stage(settings),
        build_and_push_stage(settings),
        deploy_stage(settings, "Deploy to dev", deploy.dev_manifest, deploy.dev_namespace, clean=True),
        security_scan_stage(settings),
        pod_command_stage(settings, "Reset persisted data", data.reset_command),
        pod_command_stage(
            settings,
            "Generate test data",
            data.generate_command,
            delay=data.generate_delay_seconds,
        ),
        acceptance_stage(settings),
        pod_command_stage(settings, "Remove test data", data.cleanup_command),
        deploy_stage(settings, "Deploy to prod", deploy.prod_manifest, deploy.prod_namespace, clean=False),
        sanity_check_stage(settings),
    ]
