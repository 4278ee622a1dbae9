"""Shared fixtures for unit tests."""

from pathlib import Path

import pytest

from fakes import FakeCluster, FakeCommandRunner, RecordingNotifier
from shipline.config import DataConfig, Settings


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        data_dir=tmp_path / "data",
        workspace=tmp_path / "workspace",
        job_name="web-app",
        build_number=42,
        registry_credential="",
        image_repository="registry.example.com/web",
        image_tag="",
        source_repo_url="https://git.example.com/team/web.git",
        cluster_credential="",
        kube_context="",
        logfire_token="",
        telegram_bot_token="",
        telegram_chat_id="",
        data=DataConfig(generate_delay_seconds=0),
    )


@pytest.fixture
def runner() -> FakeCommandRunner:
    return FakeCommandRunner()


@pytest.fixture
def cluster(runner: FakeCommandRunner) -> FakeCluster:
    return FakeCluster(runner)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
