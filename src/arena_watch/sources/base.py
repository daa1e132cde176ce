from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from arena_watch.models import ArenaItem

logger = logging.getLogger(__name__)


class Source(ABC):
    def __init__(self, source_id: str) -> None:
        self.source_id = source_id

    @abstractmethod
    def fetch(self) -> list[ArenaItem]:
        """Fetch the full current snapshot of items, in feed order."""


def fetch_all(sources: list[Source]) -> list[ArenaItem]:
    """Concatenate every source's snapshot in configuration order.

    A failing source aborts the whole fetch; its exception propagates.
    """
    items: list[ArenaItem] = []
    for source in sources:
        fetched = source.fetch()
        logger.debug("Source %s yielded %d item(s)", source.source_id, len(fetched))
        items.extend(fetched)
    return items
