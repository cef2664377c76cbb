"""
Size-budget degradation for persisted auth payloads.

When the compressed selection exceeds the byte budget, fall back through
progressively smaller tiers and keep the first that fits:

1. ``full`` - every selected file;
2. ``credentials+key`` - the credentials file and the primary key file;
3. ``credentials`` - the credentials file alone.

The last tier is used even when it is still over budget. Without a
credentials file there is nothing smaller worth keeping, so the full set is
persisted as is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Mapping

from .codec import EncodedFile
from .selector import CREDENTIALS_FILE, PRIMARY_KEY_FILES

logger = logging.getLogger(__name__)

TIER_FULL = "full"
TIER_CREDENTIALS_KEY = "credentials+key"
TIER_CREDENTIALS = "credentials"


@dataclass(frozen=True, slots=True)
class DegradeResult:
    tier: str
    files: Dict[str, EncodedFile]

    @property
    def total_bytes(self) -> int:
        return total_compressed(self.files)

    @property
    def checksums(self) -> Dict[str, str]:
        return {path: f.checksum for path, f in self.files.items()}


def total_compressed(files: Mapping[str, EncodedFile]) -> int:
    return sum(f.compressed_size for f in files.values())


def _subset(files: Mapping[str, EncodedFile], *paths: str) -> Dict[str, EncodedFile]:
    return {path: files[path] for path in paths if path in files}


def _primary_key(files: Mapping[str, EncodedFile]) -> str | None:
    return next((path for path in PRIMARY_KEY_FILES if path in files), None)


def fit_to_budget(files: Mapping[str, EncodedFile], max_bytes: int) -> DegradeResult:
    """Return the first tier of ``files`` whose compressed size fits ``max_bytes``."""

    full = dict(files)
    if total_compressed(full) <= max_bytes:
        return DegradeResult(TIER_FULL, full)

    key = _primary_key(files)
    small = _subset(files, CREDENTIALS_FILE, *([key] if key else []))
    if small and total_compressed(small) <= max_bytes:
        result = DegradeResult(TIER_CREDENTIALS_KEY, small)
    elif CREDENTIALS_FILE in files:
        result = DegradeResult(TIER_CREDENTIALS, _subset(files, CREDENTIALS_FILE))
    else:
        logger.warning(
            "Auth payload of %d bytes exceeds budget %d and has no %s; keeping full set",
            total_compressed(full),
            max_bytes,
            CREDENTIALS_FILE,
        )
        return DegradeResult(TIER_FULL, full)

    if result.total_bytes > max_bytes:
        logger.warning(
            "Auth payload still %d bytes over budget at tier %s; persisting anyway",
            result.total_bytes - max_bytes,
            result.tier,
        )
    else:
        logger.info(
            "Auth payload degraded to tier %s (%d -> %d bytes)",
            result.tier,
            total_compressed(full),
            result.total_bytes,
        )
    return result


__all__ = [
    "TIER_FULL",
    "TIER_CREDENTIALS_KEY",
    "TIER_CREDENTIALS",
    "DegradeResult",
    "fit_to_budget",
    "total_compressed",
]
