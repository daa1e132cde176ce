from __future__ import annotations

from collections.abc import Iterable

from arena_watch.models import ArenaItem


def find_new_items(items: Iterable[ArenaItem], known_ids: set[str]) -> list[ArenaItem]:
    """Return the items whose id is not in ``known_ids``, in input order.

    ``known_ids`` is the snapshot taken before the cycle started, so two feeds
    returning the same unseen id both yield it.
    """
    return [item for item in items if item.id not in known_ids]
