"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class SourceConfig(BaseModel):
    """Source checkout parameters."""

    branch: str = "master"


class LintConfig(BaseModel):
    """Static analysis linters and the globs they run against."""

    python_linter: list[str] = Field(default_factory=lambda: ["pylint"])
    python_globs: list[str] = Field(default_factory=lambda: ["**/*.py"])
    yaml_linter: list[str] = Field(default_factory=lambda: ["yamllint"])
    yaml_globs: list[str] = Field(default_factory=lambda: ["**/*.yaml", "**/*.yml"])


class ImageConfig(BaseModel):
    """Container image build parameters."""

    dockerfile: str = "Dockerfile"
    build_context: str = "."


class DeployConfig(BaseModel):
    """Kubernetes deployment targets."""

    dev_namespace: str = "dev"
    prod_namespace: str = "prod"
    dev_manifest: str = "k8s/dev/deployment.yaml"
    prod_manifest: str = "k8s/prod/deployment.yaml"
    image_placeholder: str = "IMAGE_PLACEHOLDER"


class ScanConfig(BaseModel):
    """Dynamic security scanner (OWASP ZAP baseline by default)."""

    scanner_image: str = "ghcr.io/zaproxy/zaproxy:stable"
    target_url: str = "http://dev.example.internal"
    report_file: str = "zap_report.html"
    mount_path: str = "/zap/wrk"


class DataConfig(BaseModel):
    """Remote data commands executed inside the application pod."""

    pod_selector: str = "app=web"
    reset_command: list[str] = Field(
        default_factory=lambda: ["python", "manage.py", "flush", "--no-input"]
    )
    generate_command: list[str] = Field(
        default_factory=lambda: ["python", "manage.py", "generate_test_data"]
    )
    cleanup_command: list[str] = Field(
        default_factory=lambda: ["python", "manage.py", "remove_test_data"]
    )
    generate_delay_seconds: float = 30.0


class AcceptanceConfig(BaseModel):
    """Browser acceptance-test container."""

    container_name: str = "acceptance-tests"
    image_name: str = "acceptance-tests"
    build_context: str = "acceptance"
    network: str = "host"


class SchedulerConfig(BaseModel):
    """Interval trigger for unattended runs."""

    interval_minutes: int = 60


class NotificationsConfig(BaseModel):
    """Chat notification parameters."""

    enabled: bool = True
    parse_mode: str = "HTML"
    # Success messages arrive without a sound on recipients' devices
    silent_success: bool = True


class CommandConfig(BaseModel):
    """External command execution parameters."""

    # None disables the per-command timeout
    command_timeout_seconds: float | None = None
    stderr_tail_lines: int = 20


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")
    workspace: Path = Path("workspace")

    # Run identity (set by the automation server)
    job_name: str = "shipline"
    build_number: int = 0

    # Pipeline environment
    registry_credential: str = ""
    image_repository: str = ""
    image_tag: str = ""
    source_repo_url: str = ""
    cluster_credential: str = ""
    kube_context: str = ""

    # Observability
    logfire_token: str = ""

    # Telegram
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    # Nested configuration sections
    source: SourceConfig = Field(default_factory=SourceConfig)
    lint: LintConfig = Field(default_factory=LintConfig)
    image: ImageConfig = Field(default_factory=ImageConfig)
    deploy: DeployConfig = Field(default_factory=DeployConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    data: DataConfig = Field(default_factory=DataConfig)
    acceptance: AcceptanceConfig = Field(default_factory=AcceptanceConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    commands: CommandConfig = Field(default_factory=CommandConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", "workspace", mode="after")
    @classmethod
    def resolve_path(cls, v: Path) -> Path:
        """Resolve directories to absolute paths."""
        return v.resolve()

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.warning(
                f"Config file not found: {config_path}. "
                "Using defaults. Run 'python -m shipline init' to create it."
            )
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in [
                "source",
                "lint",
                "image",
                "deploy",
                "scan",
                "data",
                "acceptance",
                "scheduler",
                "notifications",
                "commands",
            ]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    yaml_section = yaml_config[section_name] or {}

                    section_dict = section.model_dump()
                    section_dict.update(yaml_section)

                    new_section = section.__class__(**section_dict)
                    setattr(self, section_name, new_section)

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to load config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
