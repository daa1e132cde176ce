from __future__ import annotations

import logging
from typing import Any

import requests

from arena_watch.errors import FeedFetchError
from arena_watch.models import ArenaItem
from arena_watch.utils.datetime_utils import parse_datetime_utc
from arena_watch.utils.url_utils import with_query_params

from .base import Source

logger = logging.getLogger(__name__)

_NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "User-Agent": "arena-watch/0.1 (+https://www.are.na/)",
}
# per=-1 asks the API for the whole channel in one page.
_NO_PAGINATION_LIMIT = -1


class ArenaChannelSource(Source):
    def __init__(self, url: str, timeout_seconds: int = 30) -> None:
        super().__init__(source_id=url)
        self.url = url
        self.timeout_seconds = timeout_seconds

    @property
    def request_url(self) -> str:
        return with_query_params(self.url, per=_NO_PAGINATION_LIMIT)

    def fetch(self) -> list[ArenaItem]:
        try:
            response = requests.get(
                self.request_url,
                timeout=self.timeout_seconds,
                headers=_NO_CACHE_HEADERS,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise FeedFetchError(f"failed to fetch {self.source_id}: {exc}") from exc
        except ValueError as exc:
            raise FeedFetchError(f"feed {self.source_id} did not return valid JSON") from exc

        contents = payload.get("contents") if isinstance(payload, dict) else None
        if not isinstance(contents, list):
            raise FeedFetchError(f"feed {self.source_id} response has no contents array")

        items: list[ArenaItem] = []
        for entry in contents:
            item = self._entry_to_item(entry)
            if item is not None:
                items.append(item)

        return items

    def _entry_to_item(self, entry: Any) -> ArenaItem | None:
        if not isinstance(entry, dict):
            logger.warning("Skipping non-object entry in %s", self.source_id)
            return None

        raw_id = entry.get("id")
        item_id = str(raw_id).strip() if raw_id is not None else ""
        if not item_id:
            logger.warning("Skipping entry without id in %s", self.source_id)
            return None

        title = entry.get("title")
        contributor = str(entry.get("connected_by_username") or "").strip()

        return ArenaItem(
            id=item_id,
            title=str(title) if title is not None else None,
            contributor=contributor or "someone",
            source_url=self.url,
            connected_at=parse_datetime_utc(entry.get("connected_at")),
            item_class=_optional_str(entry.get("class")),
            raw=entry,
        )


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    normalized = str(value).strip()
    return normalized or None
