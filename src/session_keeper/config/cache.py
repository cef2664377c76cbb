import os


class Cache:
    """Group metadata cache limits.

    Values come from the ``[session_keeper.cache]`` table when present,
    otherwise from ``GROUPCACHE_*`` environment variables. Durations are in
    seconds, sizes in (approximate) bytes. ``MAX_BYTES`` switches the session
    registry from count-bounded to byte-bounded eviction.
    """

    def __init__(self, config: dict | None = None) -> None:
        cache_cfg = (config or {}).get("session_keeper", {}).get("cache", {})

        self.MAX_SESSIONS: int = int(cache_cfg.get("max_sessions", os.getenv("GROUPCACHE_MAX_SESSIONS", "50")))
        self.MAX_BYTES: int = int(cache_cfg.get("max_bytes", os.getenv("GROUPCACHE_MAX_BYTES", "0")))
        self.MAX_GROUPS: int = int(cache_cfg.get("max_groups", os.getenv("GROUPCACHE_MAX_GROUPS", "1000")))
        self.GROUP_TTL: float = float(cache_cfg.get("group_ttl", os.getenv("GROUPCACHE_GROUP_TTL", str(60 * 60 * 24))))
        self.PREFETCH_LIMIT: int = int(cache_cfg.get("prefetch_limit", os.getenv("GROUPCACHE_PREFETCH_LIMIT", "300")))
        self.PER_SESSION_MAX_BYTES: int = int(
            cache_cfg.get("per_session_max_bytes", os.getenv("GROUPCACHE_PER_SESSION_MAX_BYTES", "0"))
        )
        self.PRUNE_INTERVAL: float = float(cache_cfg.get("prune_interval", os.getenv("GROUPCACHE_PRUNE_INTERVAL", "300")))
        self.AUTO_CLEAN_INTERVAL: float = float(
            cache_cfg.get(
                "auto_clean_interval",
                os.getenv("GROUPCACHE_AUTO_CLEAN_INTERVAL", str(self.PRUNE_INTERVAL)),
            )
        )
        self.MAX_SUBJECT_LEN: int = int(cache_cfg.get("max_subject_len", os.getenv("GROUPCACHE_MAX_SUBJECT_LEN", "200")))
        self.MAX_DESC_LEN: int = int(cache_cfg.get("max_desc_len", os.getenv("GROUPCACHE_MAX_DESC_LEN", "500")))

        positive = [
            ("MAX_SESSIONS", self.MAX_SESSIONS),
            ("MAX_GROUPS", self.MAX_GROUPS),
            ("GROUP_TTL", self.GROUP_TTL),
            ("PRUNE_INTERVAL", self.PRUNE_INTERVAL),
        ]
        bad = [name for name, val in positive if val <= 0]
        non_negative = [
            ("MAX_BYTES", self.MAX_BYTES),
            ("PREFETCH_LIMIT", self.PREFETCH_LIMIT),
            ("PER_SESSION_MAX_BYTES", self.PER_SESSION_MAX_BYTES),
            ("AUTO_CLEAN_INTERVAL", self.AUTO_CLEAN_INTERVAL),
            ("MAX_SUBJECT_LEN", self.MAX_SUBJECT_LEN),
            ("MAX_DESC_LEN", self.MAX_DESC_LEN),
        ]
        bad += [name for name, val in non_negative if val < 0]
        if bad:
            raise ValueError(f"Invalid cache settings: {', '.join(bad)}")

    @property
    def bounded_by_bytes(self) -> bool:
        return self.MAX_BYTES > 0
