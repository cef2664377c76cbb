"""
Persisted auth payload and its wire shape.

``save`` collaborators receive (and ``load`` collaborators return) a plain,
JSON-serializable mapping::

    {
        "_selected_files": {"creds.json": "<base64(gzip(bytes))>", ...},
        "_selected_meta": {
            "checksums": {"creds.json": "<sha256 hex of raw bytes>", ...},
            "totalBytes": 1234,
            "ts": 1700000000000,
            "tier": "full",
        },
    }

Stores that keep the payload inside a larger credentials document may hand
it back wrapped as ``{"creds": {...}}``; :meth:`PersistedPayload.from_loaded`
accepts both shapes (and JSON text of either) and is the only place that
inspects loaded data.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from session_keeper.errors import ChecksumMismatchError, PayloadShapeError

from .codec import verify_file
from .degrade import TIER_FULL, DegradeResult

FILES_KEY = "_selected_files"
META_KEY = "_selected_meta"
WRAPPER_KEY = "creds"

NO_SELECTED_FILES = "no_selected_files_in_db"


def _as_mapping(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise PayloadShapeError(NO_SELECTED_FILES) from exc
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            raise PayloadShapeError(NO_SELECTED_FILES) from exc
    return value


def _meta_int(meta: Mapping[str, Any], key: str) -> int:
    try:
        return int(meta.get(key) or 0)
    except (TypeError, ValueError) as exc:
        raise PayloadShapeError(NO_SELECTED_FILES) from exc


@dataclass
class PersistedPayload:
    encoded_files: Dict[str, str]
    checksums: Dict[str, str]
    total_bytes: int
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))
    tier: str = TIER_FULL

    @classmethod
    def from_degrade(cls, result: DegradeResult, *, timestamp: int | None = None) -> "PersistedPayload":
        payload = cls(
            encoded_files={path: f.encoded for path, f in result.files.items()},
            checksums=result.checksums,
            total_bytes=result.total_bytes,
            tier=result.tier,
        )
        if timestamp is not None:
            payload.timestamp = timestamp
        return payload

    def to_wire(self) -> Dict[str, Any]:
        return {
            FILES_KEY: dict(self.encoded_files),
            META_KEY: {
                "checksums": dict(self.checksums),
                "totalBytes": self.total_bytes,
                "ts": self.timestamp,
                "tier": self.tier,
            },
        }

    @classmethod
    def from_loaded(cls, loaded: Any) -> "PersistedPayload":
        """Normalize a loaded payload (bare or wrapped under ``creds``).

        Raises :class:`PayloadShapeError` when no selected files or checksums
        can be found.
        """

        if isinstance(loaded, cls):
            return loaded
        loaded = _as_mapping(loaded)
        if not isinstance(loaded, Mapping):
            raise PayloadShapeError(NO_SELECTED_FILES)

        inner = loaded
        if WRAPPER_KEY in loaded and loaded[WRAPPER_KEY] is not None:
            inner = _as_mapping(loaded[WRAPPER_KEY])
            if not isinstance(inner, Mapping):
                inner = {}

        files = inner.get(FILES_KEY) or loaded.get(FILES_KEY)
        meta = inner.get(META_KEY) or loaded.get(META_KEY)
        if not isinstance(files, Mapping) or not isinstance(meta, Mapping):
            raise PayloadShapeError(NO_SELECTED_FILES)
        checksums = meta.get("checksums")
        if not isinstance(checksums, Mapping):
            raise PayloadShapeError(NO_SELECTED_FILES)

        return cls(
            encoded_files={str(k): str(v) for k, v in files.items()},
            checksums={str(k): str(v) for k, v in checksums.items()},
            total_bytes=_meta_int(meta, "totalBytes"),
            timestamp=_meta_int(meta, "ts"),
            tier=str(meta.get("tier") or TIER_FULL),
        )

    def verify(self) -> None:
        """Decode every checksummed file and compare digests.

        Raises :class:`ChecksumMismatchError` naming the first bad path.
        """

        for path, expected in self.checksums.items():
            encoded = self.encoded_files.get(path)
            if not encoded:
                raise ChecksumMismatchError(path, expected)
            try:
                verify_file(path, encoded, expected)
            except ChecksumMismatchError:
                raise
            except ValueError as exc:
                raise ChecksumMismatchError(path, expected) from exc


__all__ = [
    "FILES_KEY",
    "META_KEY",
    "WRAPPER_KEY",
    "PersistedPayload",
]
