"""Logfire tracing for pipeline runs."""

import logging
from contextlib import AbstractContextManager, nullcontext
from typing import Any

import logfire

from shipline import __version__
from shipline.config import Settings

logger = logging.getLogger(__name__)

_tracing_enabled = False


def initialize_logfire(settings: Settings) -> bool:
    """
    Configure Logfire once at startup, before the first run.

    With a token set, runs and stages are traced as spans, Bot API calls
    (httpx) are instrumented, and Python logging is forwarded. Without one,
    or if configuration fails, tracing stays off and the pipeline is
    unaffected.

    Returns:
        True if tracing was enabled
    """
    global _tracing_enabled

    if not settings.logfire_token:
        logger.debug("Logfire token not set - tracing disabled")
        return False

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="shipline",
            service_version=__version__,
            environment=settings.job_name,
        )
        logfire.instrument_httpx()
        logging.getLogger().addHandler(logfire.LogfireLoggingHandler())
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
        return False

    _tracing_enabled = True
    logger.info("✓ Logfire tracing initialized")
    return True


def trace_span(name: str, **attributes: Any) -> AbstractContextManager:
    """Logfire span when tracing is enabled, otherwise a no-op context."""
    if not _tracing_enabled:
        return nullcontext()
    return logfire.span(name, **attributes)
