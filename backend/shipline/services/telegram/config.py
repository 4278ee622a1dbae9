"""Telegram transport config."""

from pydantic import BaseModel


class TelegramConfig(BaseModel):
    """Bot credentials and delivery options for the pipeline channel."""

    bot_token: str
    chat_id: str
    timeout_seconds: float = 30.0
    parse_mode: str = "HTML"
