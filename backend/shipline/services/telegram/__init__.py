"""Telegram chat transport for pipeline notifications."""

from .client import TelegramClient, create_telegram_client
from .config import TelegramConfig
from .exceptions import TelegramAuthError, TelegramError
from .models import DeliveryResult

__all__ = [
    "TelegramClient",
    "create_telegram_client",
    "TelegramConfig",
    "DeliveryResult",
    "TelegramError",
    "TelegramAuthError",
]
