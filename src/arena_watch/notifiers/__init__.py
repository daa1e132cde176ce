"""Notifier implementations."""

from .base import Notifier
from .telegram_bot import (
    LEAD_INS,
    TelegramBotNotifier,
    random_lead_in,
    render_message_text,
)

__all__ = [
    "LEAD_INS",
    "Notifier",
    "TelegramBotNotifier",
    "random_lead_in",
    "render_message_text",
]
