from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from arena_watch.models import ArenaItem


@dataclass(slots=True)
class SeenRecord:
    id: str
    title: str | None
    contributor: str
    link: str
    source_url: str
    item_class: str | None
    connected_at: datetime | None
    first_seen_at: datetime
    last_seen_at: datetime


class Store(ABC):
    @abstractmethod
    def init_db(self) -> None:
        """Create any required schema."""

    @abstractmethod
    def upsert_batch(self, items: list[ArenaItem]) -> int:
        """Insert or update each item keyed by id; return how many were written."""

    @abstractmethod
    def list_known_ids(self) -> set[str]:
        """Return every stored item id."""

    def close(self) -> None:
        """Release the underlying connection, if any."""
