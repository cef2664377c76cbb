"""Checksum, gzip and base64 helpers for persisted auth files.

Checksums are taken over the raw bytes, so a round trip is verified
end-to-end regardless of compression settings.
"""

from __future__ import annotations

import base64
import binascii
import gzip
import hashlib
import zlib
from dataclasses import dataclass
from typing import Dict, Mapping

from session_keeper.errors import ChecksumMismatchError


@dataclass(frozen=True, slots=True)
class EncodedFile:
    path: str
    checksum: str
    compressed_size: int
    encoded: str


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def encode_file(path: str, data: bytes) -> EncodedFile:
    """Checksum ``data``, gzip it and base64-encode the compressed bytes."""

    compressed = gzip.compress(data)
    return EncodedFile(
        path=path,
        checksum=sha256_hex(data),
        compressed_size=len(compressed),
        encoded=base64.b64encode(compressed).decode("ascii"),
    )


def encode_files(raw_files: Mapping[str, bytes]) -> Dict[str, EncodedFile]:
    return {path: encode_file(path, data) for path, data in raw_files.items()}


def decode_file(encoded: str) -> bytes:
    """Inverse of :func:`encode_file`; raises ``ValueError`` on corrupt input."""

    try:
        compressed = base64.b64decode(encoded, validate=True)
        return gzip.decompress(compressed)
    except (binascii.Error, gzip.BadGzipFile, zlib.error, EOFError, TypeError) as exc:
        raise ValueError(f"undecodable payload: {exc}") from exc


def verify_file(path: str, encoded: str, expected: str | None) -> bytes:
    """Decode ``encoded`` and check it against ``expected``. Returns the raw bytes."""

    data = decode_file(encoded)
    actual = sha256_hex(data)
    if not expected or actual != expected:
        raise ChecksumMismatchError(path, expected, actual)
    return data


__all__ = [
    "EncodedFile",
    "sha256_hex",
    "encode_file",
    "encode_files",
    "decode_file",
    "verify_file",
]
