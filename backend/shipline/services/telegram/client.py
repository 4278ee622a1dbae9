"""Telegram client posting pipeline messages through the Bot API."""

from __future__ import annotations

import logging
from typing import Any

from telegram import Bot
from telegram.error import Forbidden, InvalidToken
from telegram.error import TelegramError as BotAPIError

from .config import TelegramConfig
from .exceptions import TelegramAuthError
from .models import DeliveryResult

logger = logging.getLogger(__name__)


class TelegramClient:
    """Async context manager around one Bot session."""

    def __init__(self, config: TelegramConfig):
        self.config = config
        self._bot: Bot | None = None

    async def __aenter__(self) -> TelegramClient:
        self._bot = Bot(token=self.config.bot_token)
        try:
            await self._bot.initialize()
        except InvalidToken as e:
            self._bot = None
            raise TelegramAuthError(f"Bot token rejected: {e}") from e
        logger.debug(f"Connected to Telegram bot: @{self._bot.username}")
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._bot:
            await self._bot.shutdown()
            self._bot = None

    @property
    def bot(self) -> Bot:
        if self._bot is None:
            raise RuntimeError("TelegramClient must be used as async context manager")
        return self._bot

    async def send(self, text: str, silent: bool = False) -> DeliveryResult:
        """Post ``text`` to the configured chat in a single attempt.

        Bot API errors are reported in the result rather than raised.
        """
        chat_id = self.config.chat_id
        try:
            message = await self.bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode=self.config.parse_mode,
                disable_notification=silent,
                read_timeout=self.config.timeout_seconds,
                write_timeout=self.config.timeout_seconds,
            )
        except Forbidden as e:
            logger.warning(f"Bot may not post to chat {chat_id}: {e.message}")
            return DeliveryResult(delivered=False, chat_id=chat_id, error=e.message)
        except BotAPIError as e:
            logger.warning(f"Telegram send failed: {e.message}")
            return DeliveryResult(delivered=False, chat_id=chat_id, error=e.message)

        logger.info(f"Notification posted to {chat_id} (message_id: {message.message_id})")
        return DeliveryResult(delivered=True, chat_id=chat_id, message_id=message.message_id)


def create_telegram_client(config: TelegramConfig) -> TelegramClient:
    """Create a TelegramClient instance."""
    return TelegramClient(config=config)
