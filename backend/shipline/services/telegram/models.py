"""Telegram delivery models."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class DeliveryResult(BaseModel):
    """Outcome of posting one message to the chat."""

    delivered: bool
    chat_id: str
    message_id: int | None = None
    error: str | None = None
    sent_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        if self.delivered:
            return f"delivered to {self.chat_id} (msg_id: {self.message_id})"
        return f"not delivered to {self.chat_id}: {self.error}"
