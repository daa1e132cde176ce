from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from arena_watch.utils.url_utils import block_url

UNTITLED_LABEL = "an untitled item"


@dataclass(slots=True)
class ArenaItem:
    id: str
    title: str | None
    contributor: str
    source_url: str
    connected_at: datetime | None = None
    item_class: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def link(self) -> str:
        return block_url(self.id)

    @property
    def display_title(self) -> str:
        title = (self.title or "").strip()
        return title or UNTITLED_LABEL
