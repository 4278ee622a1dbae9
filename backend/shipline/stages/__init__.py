"""Stage catalog for the delivery pipeline."""

from .catalog import STAGE_NAMES, build_stages

__all__ = ["STAGE_NAMES", "build_stages"]
