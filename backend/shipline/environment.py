"""Immutable run environment shared by every stage of one pipeline run."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from string import Template
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from shipline.config import Settings
from shipline.pipeline.exceptions import PipelineConfigError


class Environment(BaseModel):
    """Variables populated once at pipeline start and read-only afterwards.

    Credential handles are paths understood by the tools themselves:
    ``registry_credential`` is a Docker client config directory and
    ``cluster_credential`` a kubeconfig file.
    """

    model_config = ConfigDict(frozen=True)

    job_name: str
    build_number: int
    registry_credential: str = ""
    image_repository: str
    image_tag: str
    source_repo_url: str
    cluster_credential: str = ""
    workspace: Path

    @classmethod
    def from_settings(cls, settings: Settings, build_number: int | None = None) -> Environment:
        """Build the environment for one run; the image tag defaults to the build number."""
        number = settings.build_number if build_number is None else build_number
        return cls(
            job_name=settings.job_name,
            build_number=number,
            registry_credential=settings.registry_credential,
            image_repository=settings.image_repository,
            image_tag=settings.image_tag or str(number),
            source_repo_url=settings.source_repo_url,
            cluster_credential=settings.cluster_credential,
            workspace=settings.workspace,
        )

    @property
    def image(self) -> str:
        """Full run-scoped image coordinate (repository:tag)."""
        return f"{self.image_repository}:{self.image_tag}"

    def variables(self) -> Mapping[str, str]:
        """Read-only mapping of the variables stage bodies may reference."""
        return MappingProxyType(
            {
                "JOB_NAME": self.job_name,
                "BUILD_NUMBER": str(self.build_number),
                "REGISTRY_CREDENTIAL": self.registry_credential,
                "IMAGE_REPOSITORY": self.image_repository,
                "IMAGE_TAG": self.image_tag,
                "IMAGE": self.image,
                "SOURCE_REPO_URL": self.source_repo_url,
                "CLUSTER_CREDENTIAL": self.cluster_credential,
                "WORKSPACE": str(self.workspace),
            }
        )

    def resolve(self, value: str) -> str:
        """Substitute ``${NAME}`` references in a single argument."""
        try:
            return Template(value).substitute(self.variables())
        except (KeyError, ValueError) as e:
            raise PipelineConfigError(f"Cannot resolve {value!r}: {e}") from e

    def resolve_all(self, values: Iterable[str]) -> list[str]:
        """Substitute references in every argument of a command line."""
        return [self.resolve(v) for v in values]

    def unresolved(self, names: Iterable[str]) -> list[str]:
        """Return referenced names that are unknown or empty, sorted."""
        known = self.variables()
        return sorted({name for name in names if not known.get(name)})


def template_references(values: Iterable[str]) -> set[str]:
    """Collect the ``${NAME}`` identifiers used in a list of templates.

    Raises:
        PipelineConfigError: A value holds a ``$`` that is not a placeholder
            (a literal dollar sign is written ``$$``)
    """
    names: set[str] = set()
    for value in values:
        template = Template(value)
        if not template.is_valid():
            raise PipelineConfigError(
                f"Invalid placeholder in {value!r}; write a literal $ as $$"
            )
        names.update(template.get_identifiers())
    return names
