"""Telegram transport exceptions."""


class TelegramError(Exception):
    """Base Telegram transport exception."""

    pass


class TelegramAuthError(TelegramError):
    """The bot token was rejected."""

    pass
