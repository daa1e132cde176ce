from __future__ import annotations


class ArenaWatchError(Exception):
    """Base class for runtime failures raised by arena-watch components."""


class FeedFetchError(ArenaWatchError):
    """Raised when a channel feed cannot be fetched or parsed."""


class StoreError(ArenaWatchError):
    """Raised when the seen-item store cannot be opened or used."""


class StoreReadError(StoreError):
    """Raised when known ids cannot be read from the store."""


class StoreWriteError(StoreError):
    """Raised when no item of a batch could be written to the store."""


class NotifyDeliveryError(ArenaWatchError):
    """Raised when the chat message could not be delivered."""


class PairingPingError(ArenaWatchError):
    """Raised when the outbound ping to the partner instance fails."""
