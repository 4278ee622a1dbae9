"""Shipline CLI entry point."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

load_dotenv(Path.cwd() / ".env")

from shipline import __version__
from shipline.config import get_settings
from shipline.notifications import Notifier
from shipline.observability import initialize_logfire
from shipline.pipeline.exceptions import PipelineConfigError
from shipline.pipeline.models import Outcome
from shipline.pipeline.runner import run_pipeline
from shipline.scheduler import start_scheduler
from shipline.stages import build_stages
from shipline.storage import load_runs

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

EXIT_CODES = {
    Outcome.SUCCESS: 0,
    Outcome.FAILURE: 1,
    Outcome.UNSTABLE: 2,
}

CONFIG_TEMPLATE = """# Shipline Configuration
# Pipeline environment (image repository, credential handles, build number)
# comes from environment variables or .env, not from this file.

source:
  branch: master

lint:
  python_globs: ["**/*.py"]
  yaml_globs: ["**/*.yaml", "**/*.yml"]

image:
  dockerfile: Dockerfile
  build_context: .

deploy:
  dev_namespace: dev
  prod_namespace: prod
  dev_manifest: k8s/dev/deployment.yaml
  prod_manifest: k8s/prod/deployment.yaml
  image_placeholder: IMAGE_PLACEHOLDER

scan:
  scanner_image: ghcr.io/zaproxy/zaproxy:stable
  target_url: http://dev.example.internal
  report_file: zap_report.html

data:
  pod_selector: app=web
  generate_delay_seconds: 30

acceptance:
  container_name: acceptance-tests
  image_name: acceptance-tests
  build_context: acceptance

scheduler:
  interval_minutes: 60

notifications:
  enabled: true
  silent_success: true
"""


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory and configuration template."""
    data_dir = Path("data").resolve()

    try:
        (data_dir / "runs").mkdir(parents=True, exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Set IMAGE_REPOSITORY, SOURCE_REPO_URL and credential handles in .env")
        print("2. Review and customize data/config.yaml if needed")
        print("3. Run 'python -m shipline config' to verify configuration")
        print("4. Run 'python -m shipline run' to execute the pipeline\n")

        return 0

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== Shipline Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}")
        print(f"Workspace: {settings.workspace}\n")

        print("Run:")
        print(f"  Job: {settings.job_name}")
        print(f"  Build Number: {settings.build_number}\n")

        print("Environment:")
        print(f"  Source Repository: {settings.source_repo_url or '✗ Not set'}")
        print(f"  Branch: {settings.source.branch}")
        print(f"  Image Repository: {settings.image_repository or '✗ Not set'}")
        print(f"  Image Tag: {settings.image_tag or '(build number)'}")
        print(f"  Registry Credential: {settings.registry_credential or '(docker default)'}")
        print(f"  Cluster Credential: {settings.cluster_credential or '(kubectl default)'}\n")

        print("Deploy:")
        print(f"  Dev: {settings.deploy.dev_manifest} -> {settings.deploy.dev_namespace}")
        print(f"  Prod: {settings.deploy.prod_manifest} -> {settings.deploy.prod_namespace}\n")

        print("Data:")
        print(f"  Pod Selector: {settings.data.pod_selector}")
        print(f"  Generate Delay: {settings.data.generate_delay_seconds:g}s\n")

        print("Notifications:")
        print(f"  Enabled: {settings.notifications.enabled}")
        print(f"  Telegram: {'✓ Set' if settings.telegram_bot_token and settings.telegram_chat_id else '✗ Not set'}")
        print(f"  Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")

        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"\n❌ Failed to load configuration: {e}\n")
        return 1


def cmd_stages(args: argparse.Namespace) -> int:
    """List the pipeline stages and their steps."""
    try:
        stages = build_stages(get_settings())

        print("\n=== Pipeline Stages ===\n")
        for i, stage in enumerate(stages, 1):
            print(f"{i:>2}. {stage.name} [{stage.policy.value}]")
            for step in stage.steps:
                suffix = "  (failure ignored)" if step.ignore_failure else ""
                print(f"      - {step.description}{suffix}")
        print()

        return 0

    except Exception as e:
        logger.error(f"Failed to build stages: {e}")
        print(f"\n❌ Failed to build stages: {e}\n")
        return 1


def cmd_history(args: argparse.Namespace) -> int:
    """Display recent pipeline runs."""
    try:
        settings = get_settings()
        runs = load_runs(settings.data_dir, limit=args.limit)

        print("\n=== Recent Runs ===\n")
        if not runs:
            print("  (None)\n")
            return 0

        for run in runs:
            failed = [s.name for s in run.stages if s.status.value in ("failure", "ignored_failure")]
            print(
                f"  #{run.build_number:<5} {run.outcome.value:<9} "
                f"{run.started_at:%Y-%m-%d %H:%M} "
                f"{run.duration_seconds:>7.1f}s  {run.job_name}"
            )
            if failed:
                print(f"         failed: {', '.join(failed)}")
        print()

        return 0

    except Exception as e:
        logger.error(f"Failed to read history: {e}")
        print(f"\n❌ Failed to read history: {e}\n")
        return 1


def _notify_configuration_failure(build_number: int | None) -> None:
    """Report a run that could not start because Settings failed to load."""
    job_name = os.environ.get("JOB_NAME", "shipline")
    if build_number is None:
        try:
            build_number = int(os.environ.get("BUILD_NUMBER", "0"))
        except ValueError:
            build_number = 0

    asyncio.run(Notifier.from_environ().notify(Outcome.FAILURE, job_name, build_number))


def cmd_run(args: argparse.Namespace) -> int:
    """Run the delivery pipeline."""
    try:
        settings = get_settings()
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        print(f"\n❌ Failed to load configuration: {e}\n")
        _notify_configuration_failure(args.build_number)
        return 1

    try:
        initialize_logfire(settings)

        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)

        print("\n=== Shipline Delivery Pipeline ===\n")
        print(f"Version: {__version__}")
        print(f"Job: {settings.job_name}\n")

        if args.every:
            print(f"Starting scheduler (every {args.every} min)...\n")
            start_scheduler(settings, interval_minutes=args.every)
            return 0

        result = asyncio.run(run_pipeline(settings, build_number=args.build_number))

        print(f"\nBuild #{result.build_number}: {result.outcome.value.upper()}\n")
        for stage in result.stages:
            print(f"  {stage.status.value:<16} {stage.name}")
        print()

        return EXIT_CODES[result.outcome]

    except KeyboardInterrupt:
        print("\n\nReceived interrupt signal. Shutting down...\n")
        return 1
    except PipelineConfigError as e:
        logger.error(f"Pipeline configuration error: {e}")
        print(f"\n❌ Pipeline configuration error: {e}\n")
        return 1
    except Exception as e:
        logger.error(f"Pipeline run failed: {e}", exc_info=True)
        print(f"\n❌ Pipeline run failed: {e}\n")
        return 1


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Shipline: continuous-delivery pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Shipline {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory and configuration file",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_stages = subparsers.add_parser(
        "stages",
        help="List pipeline stages",
    )
    parser_stages.set_defaults(func=cmd_stages)

    parser_history = subparsers.add_parser(
        "history",
        help="Display recent pipeline runs",
    )
    parser_history.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Number of runs to show",
    )
    parser_history.set_defaults(func=cmd_history)

    parser_run = subparsers.add_parser(
        "run",
        help="Run the delivery pipeline",
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (streams command output)",
    )
    parser_run.add_argument(
        "--build-number",
        type=int,
        default=None,
        help="Override BUILD_NUMBER for this run",
    )
    parser_run.add_argument(
        "--every",
        type=int,
        metavar="MINUTES",
        default=None,
        help="Run now and then every MINUTES, one run at a time",
    )
    parser_run.set_defaults(func=cmd_run)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
