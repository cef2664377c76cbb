"""TTL + LRU record collection that reports its own evictions."""

from __future__ import annotations

import time
from typing import Any, Callable, Hashable, List, Tuple

from cachetools import Cache, TTLCache

EvictionCallback = Callable[[Hashable, Any, str], None]


class GroupStore(TTLCache):
    """:class:`cachetools.TTLCache` that notifies ``on_evict`` on LRU and TTL removal.

    Overflow on insert and :meth:`popitem` report ``"lru"``; expiry reports
    ``"ttl"``. Explicit ``pop``/``del`` does not notify; the caller accounts
    for those itself.
    """

    def __init__(
        self,
        maxsize: int,
        ttl: float,
        timer: Callable[[], float] = time.monotonic,
        on_evict: EvictionCallback | None = None,
    ) -> None:
        super().__init__(maxsize, ttl, timer)
        self.on_evict = on_evict

    def popitem(self):
        key, value = super().popitem()
        self._notify(key, value, "lru")
        return key, value

    def expire(self, time=None):
        expired = super().expire(time)
        for key, value in expired or ():
            self._notify(key, value, "ttl")
        return expired

    def _notify(self, key, value, reason: str) -> None:
        if self.on_evict is not None:
            self.on_evict(key, value, reason)

    def peek(self, key, default=None):
        """Return the stored value without expiry checks or LRU promotion."""

        try:
            return Cache.__getitem__(self, key)
        except KeyError:
            return default

    def records(self) -> List[Tuple[Hashable, Any]]:
        """Snapshot of every stored item, including expired ones not yet purged."""

        return [(key, Cache.__getitem__(self, key)) for key in list(Cache.__iter__(self))]

    def live_keys(self) -> List[Hashable]:
        """Keys whose records have not expired, least recently used first."""

        return [key for key in list(Cache.__iter__(self)) if key in self]
