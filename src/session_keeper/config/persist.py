import os


class Persist:
    """Auth state persistence limits (``[session_keeper.persist]`` / ``AUTH_*``)."""

    def __init__(self, config: dict | None = None) -> None:
        persist_cfg = (config or {}).get("session_keeper", {}).get("persist", {})

        self.MAX_BYTES: int = int(persist_cfg.get("max_bytes", os.getenv("AUTH_MAX_BYTES", str(600 * 1024))))
        self.ATTEMPTS: int = int(persist_cfg.get("attempts", os.getenv("AUTH_PERSIST_ATTEMPTS", "5")))
        self.BACKOFF_BASE: float = float(persist_cfg.get("backoff_base", os.getenv("AUTH_BACKOFF_BASE", "0.2")))
        self.MAX_FILE_BYTES: int = int(
            persist_cfg.get("max_file_bytes", os.getenv("AUTH_MAX_FILE_BYTES", str(1024 * 1024)))
        )

        if self.ATTEMPTS < 1:
            raise ValueError("AUTH_PERSIST_ATTEMPTS must be >= 1")
        if self.MAX_BYTES <= 0 or self.MAX_FILE_BYTES <= 0:
            raise ValueError("AUTH_MAX_BYTES and AUTH_MAX_FILE_BYTES must be positive")
        if self.BACKOFF_BASE < 0:
            raise ValueError("AUTH_BACKOFF_BASE must be >= 0")
