from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from arena_watch.diff import find_new_items
from arena_watch.errors import (
    FeedFetchError,
    NotifyDeliveryError,
    StoreReadError,
    StoreWriteError,
)
from arena_watch.models import ArenaItem
from arena_watch.notifiers import Notifier
from arena_watch.sources import Source, fetch_all
from arena_watch.store import Store

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunStats:
    fetched: int = 0
    new: int = 0
    stored: int = 0
    notified: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class ArenaWatchService:
    """Owns the collaborators of one fetch, diff, persist, notify cycle."""

    def __init__(
        self,
        *,
        sources: list[Source],
        store: Store,
        notifier: Notifier | None,
        dry_run: bool = False,
        preview_callback: Callable[[list[ArenaItem]], None] | None = None,
    ) -> None:
        self.sources = sources
        self.store = store
        self.notifier = notifier
        self.dry_run = dry_run
        self.preview_callback = preview_callback or _default_preview

    def run_once(self) -> RunStats:
        stats = RunStats()

        try:
            items = fetch_all(self.sources)
        except FeedFetchError as exc:
            message = f"feed fetch failed, cycle aborted: {exc}"
            logger.error(message)
            stats.errors.append(message)
            return stats
        stats.fetched = len(items)

        try:
            known_ids = self.store.list_known_ids()
        except StoreReadError as exc:
            message = f"failed to read known ids, treating every element as new: {exc}"
            logger.exception(message)
            stats.errors.append(message)
            known_ids = set()

        new_items = find_new_items(items, known_ids)
        stats.new = len(new_items)
        if not new_items:
            return stats

        if self.dry_run:
            self.preview_callback(new_items)
            return stats

        try:
            stats.stored = self.store.upsert_batch(new_items)
        except StoreWriteError as exc:
            message = f"failed to persist {len(new_items)} new element(s): {exc}"
            logger.exception(message)
            stats.errors.append(message)

        if self.notifier is None:
            message = "notifier is required when dry_run is false"
            logger.error(message)
            stats.errors.append(message)
            return stats

        try:
            self.notifier.notify(new_items)
        except NotifyDeliveryError as exc:
            message = f"failed to notify about {len(new_items)} new element(s): {exc}"
            logger.exception(message)
            stats.errors.append(message)
            return stats

        stats.notified = True
        return stats

    def backfill(self) -> RunStats:
        """Mark every element currently in the feeds as seen, without posting."""
        stats = RunStats()

        try:
            items = fetch_all(self.sources)
        except FeedFetchError as exc:
            message = f"backfill fetch failed: {exc}"
            logger.error(message)
            stats.errors.append(message)
            return stats
        stats.fetched = len(items)

        try:
            stats.stored = self.store.upsert_batch(items)
        except StoreWriteError as exc:
            message = f"failed to mark elements seen during backfill: {exc}"
            logger.exception(message)
            stats.errors.append(message)

        return stats


def log_run_stats(stats: RunStats, *, label: str = "Cycle") -> None:
    logger.info(
        "%s complete | fetched=%d new=%d stored=%d notified=%s errors=%d",
        label,
        stats.fetched,
        stats.new,
        stats.stored,
        stats.notified,
        len(stats.errors),
    )


def _default_preview(items: list[ArenaItem]) -> None:
    print(f"[DRY RUN] WOULD POST ABOUT {len(items)} NEW ELEMENT(S):")
    for item in items:
        print(f"  {item.id}: {item.display_title} by {item.contributor} ({item.link})")
    print("")
