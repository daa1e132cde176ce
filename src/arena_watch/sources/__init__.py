"""Source implementations."""

from .arena_source import ArenaChannelSource
from .base import Source, fetch_all

__all__ = ["Source", "ArenaChannelSource", "fetch_all"]
