from __future__ import annotations

from abc import ABC, abstractmethod

from arena_watch.models import ArenaItem


class Notifier(ABC):
    @abstractmethod
    def notify(self, items: list[ArenaItem]) -> None:
        """Send one message describing ``items``; send nothing when empty."""
