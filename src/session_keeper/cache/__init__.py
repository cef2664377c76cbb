"""
Per-session group metadata cache package.

Modules
=======

``manager``
    Defines :class:`~session_keeper.cache.manager.GroupCacheManager`, the cache
    coordinator exposing get/set/update/delete, coalesced fetches, prefetch,
    stats and the background maintenance lifecycle, plus
    :class:`~session_keeper.cache.manager.SessionCacheView` for session-bound
    access.
``compactor``
    Normalizes chat identities and reduces raw group metadata to bounded
    :class:`~session_keeper.cache.compactor.GroupRecord` instances with a byte
    cost estimate.
``group_store``
    TTL + LRU record collection that reports its own evictions.
``session_state``
    Provides :class:`~session_keeper.cache.session_state.SessionEntry`, one
    session's records, inflight fetches and maintenance bookkeeping.
``accounting``
    Incremental per-session byte accounting and count/byte budget enforcement.
``registry``
    Bounds the set of sessions by session count or by aggregate bytes.
``janitor``
    Periodic purge/enforce/recalculate passes with per-session fault isolation.
``provider``
    Duck-typed access to the metadata provider's capabilities.
"""

from .compactor import GroupRecord
from .janitor import MaintenanceReport
from .manager import CacheStats, GroupCacheManager, SessionCacheView, SessionStats

__all__ = [
    "GroupCacheManager",
    "SessionCacheView",
    "GroupRecord",
    "CacheStats",
    "SessionStats",
    "MaintenanceReport",
]
