from __future__ import annotations

import html
import logging
import random
from typing import Callable

import requests

from arena_watch.errors import NotifyDeliveryError
from arena_watch.models import ArenaItem

from .base import Notifier

logger = logging.getLogger(__name__)

LeadInPicker = Callable[[], str]

LEAD_INS = (
    "Psst!",
    "Hot off the channel:",
    "Look what the cat dragged in:",
    "Stop the presses!",
    "Fresh from the pile:",
    "A little bird tells me",
    "Ding ding!",
    "Gather round:",
    "Well, well, well.",
    "New shiny thing alert:",
)

TELEGRAM_API_BASE_URL = "https://api.telegram.org"
# Keeps multi-item messages well under the 4096 character sendMessage limit.
MAX_NAMED_CONTRIBUTORS = 10


def random_lead_in() -> str:
    return random.choice(LEAD_INS)


class TelegramBotNotifier(Notifier):
    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        *,
        lead_in: LeadInPicker = random_lead_in,
        timeout_seconds: int = 15,
    ) -> None:
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.lead_in = lead_in
        self.timeout_seconds = timeout_seconds

    @property
    def endpoint(self) -> str:
        return f"{TELEGRAM_API_BASE_URL}/bot{self.bot_token}/sendMessage"

    def notify(self, items: list[ArenaItem]) -> None:
        if not items:
            return

        payload = build_send_payload(self.chat_id, items, self.lead_in())
        try:
            response = requests.post(
                self.endpoint,
                json=payload,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise NotifyDeliveryError(f"Telegram sendMessage failed: {exc}") from exc

        if response.status_code >= 400:
            raise NotifyDeliveryError(
                f"Telegram API returned {response.status_code}: {response.text}"
            )

        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("ok") is False:
            raise NotifyDeliveryError(
                f"Telegram API rejected message: {body.get('description', 'unknown error')}"
            )

        logger.info("Sent notification for %d new element(s)", len(items))


def build_send_payload(chat_id: str, items: list[ArenaItem], lead_in: str) -> dict:
    return {
        "chat_id": chat_id,
        "text": render_message_text(items, lead_in),
        "parse_mode": "HTML",
        "disable_notification": True,
        # Single-item messages keep the link preview of the element.
        "disable_web_page_preview": len(items) > 1,
    }


def render_message_text(items: list[ArenaItem], lead_in: str) -> str:
    if not items:
        raise ValueError("cannot render a message for zero items")

    prefix = html.escape(lead_in.strip())

    if len(items) == 1:
        item = items[0]
        link = html.escape(item.link, quote=True)
        title = html.escape(item.display_title)
        contributor = html.escape(item.contributor)
        return f'{prefix} <b>{contributor}</b> just added <a href="{link}">{title}</a>'

    contributors = _join_names([html.escape(name) for name in distinct_contributors(items)])
    return f"{prefix} {contributors} just added {len(items)} new items to the channel"


def distinct_contributors(items: list[ArenaItem]) -> list[str]:
    seen: set[str] = set()
    names: list[str] = []
    for item in items:
        if item.contributor in seen:
            continue
        seen.add(item.contributor)
        names.append(item.contributor)
    return names


def _join_names(names: list[str]) -> str:
    bold = [f"<b>{name}</b>" for name in names[:MAX_NAMED_CONTRIBUTORS]]
    remaining = len(names) - len(bold)
    if remaining:
        noun = "other" if remaining == 1 else "others"
        return f"{', '.join(bold)} and {remaining} {noun}"
    if len(bold) == 1:
        return bold[0]
    return f"{', '.join(bold[:-1])} and {bold[-1]}"
