"""Outcome notifications sent to the team chat."""

from __future__ import annotations

import html
import logging
import os
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel

from shipline.config import Settings
from shipline.pipeline.models import Outcome
from shipline.services.telegram import TelegramConfig, create_telegram_client

logger = logging.getLogger(__name__)


class MessageTemplate(BaseModel):
    """Fixed severity colour and text for one outcome."""

    color: str
    marker: str
    text: str


TEMPLATES: dict[Outcome, MessageTemplate] = {
    Outcome.SUCCESS: MessageTemplate(
        color="good",
        marker="\U0001F7E2",  # green circle
        text="SUCCESSFUL: Job '{job_name} [{build_number}]'",
    ),
    Outcome.UNSTABLE: MessageTemplate(
        color="warning",
        marker="\U0001F7E1",  # yellow circle
        text="UNSTABLE: Job '{job_name} [{build_number}]'",
    ),
    Outcome.FAILURE: MessageTemplate(
        color="danger",
        marker="\U0001F534",  # red circle
        text="FAILED: Job '{job_name} [{build_number}]'",
    ),
}


class Notification(BaseModel):
    """Rendered notification for one run."""

    outcome: Outcome
    color: str
    text: str
    marker: str

    def render(self) -> str:
        """Chat-ready HTML body."""
        return f"{self.marker} <b>{html.escape(self.text)}</b>"


def build_notification(outcome: Outcome, job_name: str, build_number: int) -> Notification:
    """Map an outcome onto its fixed template."""
    template = TEMPLATES[outcome]
    return Notification(
        outcome=outcome,
        color=template.color,
        marker=template.marker,
        text=template.text.format(job_name=job_name, build_number=build_number),
    )


# Returns an async context manager exposing ``send(text, silent)``
ClientFactory = Callable[[], Any]


class Notifier:
    """Sends the terminal outcome of a run to the chat channel."""

    def __init__(
        self,
        client_factory: ClientFactory | None = None,
        enabled: bool = True,
        silent_success: bool = True,
    ):
        self.client_factory = client_factory
        self.enabled = enabled
        self.silent_success = silent_success

    @classmethod
    def from_settings(cls, settings: Settings) -> Notifier:
        """Notifier delivering through the configured Telegram bot."""
        options = settings.notifications
        if not (settings.telegram_bot_token and settings.telegram_chat_id):
            return cls(client_factory=None, enabled=options.enabled)

        config = TelegramConfig(
            bot_token=settings.telegram_bot_token,
            chat_id=settings.telegram_chat_id,
            parse_mode=options.parse_mode,
        )
        return cls(
            client_factory=lambda: create_telegram_client(config),
            enabled=options.enabled,
            silent_success=options.silent_success,
        )

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> Notifier:
        """Notifier built from the bot variables alone, for runs whose Settings failed to load."""
        environ = os.environ if environ is None else environ
        bot_token = environ.get("TELEGRAM_BOT_TOKEN", "")
        chat_id = environ.get("TELEGRAM_CHAT_ID", "")
        if not (bot_token and chat_id):
            return cls(client_factory=None)

        config = TelegramConfig(bot_token=bot_token, chat_id=chat_id)
        return cls(client_factory=lambda: create_telegram_client(config))

    async def notify(self, outcome: Outcome, job_name: str, build_number: int) -> None:
        """Send one message for ``outcome``. Delivery failures are logged, never raised."""
        notification = build_notification(outcome, job_name, build_number)
        logger.info(f"Pipeline outcome: {notification.text} ({notification.color})")

        if not self.enabled:
            logger.info("Notifications disabled - not sending")
            return
        if self.client_factory is None:
            logger.warning("Chat notifications not configured - message not sent")
            return

        silent = self.silent_success and outcome is Outcome.SUCCESS
        try:
            async with self.client_factory() as client:
                result = await client.send(notification.render(), silent=silent)
            if not result.delivered:
                logger.warning(f"Notification {result}")
        except Exception as e:
            logger.warning(f"Failed to send notification: {e}")
