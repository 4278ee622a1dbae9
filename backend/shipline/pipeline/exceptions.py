"""Pipeline exception hierarchy.

Exception Classes:
- PipelineError: Base exception
- PipelineConfigError: Pipeline cannot start (empty stage list, unresolved variables)
- StageExecutionError: A step inside a stage failed
- CommandFailedError: External command exited non-zero, was missing or timed out
- ManifestError: Manifest image reference could not be rewritten
"""


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    pass


class PipelineConfigError(PipelineError):
    """Pipeline definition or environment is invalid."""

    pass


class StageExecutionError(PipelineError):
    """A step failed while executing a stage."""

    def __init__(self, message: str, step: str | None = None):
        super().__init__(message)
        self.step = step


class CommandFailedError(StageExecutionError):
    """External command terminated unsuccessfully."""

    def __init__(
        self,
        message: str,
        returncode: int,
        stderr_tail: list[str] | None = None,
        step: str | None = None,
    ):
        super().__init__(message, step=step)
        self.returncode = returncode
        self.stderr_tail = stderr_tail or []


class ManifestError(StageExecutionError):
    """Manifest has no image reference to rewrite."""

    pass
