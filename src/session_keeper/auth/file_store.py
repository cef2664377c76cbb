"""Filesystem-backed ``save``/``load`` collaborator.

Each session gets a gzipped JSON file holding the wire payload:
    <directory>/<session_id>.json.gz

Helpers:
    - FileSessionStore.save(session_id, payload)
    - FileSessionStore.load(session_id)
    - FileSessionStore.exists(session_id)
    - FileSessionStore.delete(session_id)
"""
from __future__ import annotations

import asyncio
import gzip
import json
import os
import re
from pathlib import Path
from typing import Any, Dict

_SAFE_ID = re.compile(r"^[A-Za-z0-9._@+-]+$")


class FileSessionStore:
    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, session_id: str) -> Path:
        if not _SAFE_ID.match(session_id or "") or session_id in (".", ".."):
            raise ValueError(f"unsafe session id: {session_id!r}")
        return self.directory / f"{session_id}.json.gz"

    def exists(self, session_id: str) -> bool:
        return self._path(session_id).exists()

    def _save(self, session_id: str, payload: Dict[str, Any]) -> None:
        p = self._path(session_id)
        p.parent.mkdir(parents=True, exist_ok=True)
        tmp = p.with_suffix(".tmp")
        with gzip.open(tmp, "wt", encoding="utf-8") as f:
            json.dump(payload, f)
        os.replace(tmp, p)

    def _load(self, session_id: str) -> Dict[str, Any] | None:
        p = self._path(session_id)
        if not p.exists():
            return None
        with gzip.open(p, "rt", encoding="utf-8") as f:
            return json.load(f)

    async def save(self, session_id: str, payload: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._save, session_id, payload)

    async def load(self, session_id: str) -> Dict[str, Any] | None:
        return await asyncio.to_thread(self._load, session_id)

    async def delete(self, session_id: str) -> bool:
        p = self._path(session_id)
        if not p.exists():
            return False
        await asyncio.to_thread(p.unlink)
        return True
