"""Exceptions raised by the cache and persistence layers."""

from __future__ import annotations


class MissingParameterError(ValueError):
    """A required identifier (session id, jid, payload) was not supplied."""


class ChecksumMismatchError(ValueError):
    """Decoded bytes do not hash to the recorded sha256."""

    def __init__(self, path: str, expected: str | None, actual: str | None = None) -> None:
        super().__init__(f"checksum_mismatch:{path}")
        self.path = path
        self.expected = expected
        self.actual = actual


class PayloadShapeError(ValueError):
    """A loaded payload is missing its selected files or metadata."""


def require(name: str, value) -> None:
    """Raise :class:`MissingParameterError` when ``value`` is empty."""

    if value is None or value == "":
        raise MissingParameterError(f"{name} required")


__all__ = [
    "MissingParameterError",
    "ChecksumMismatchError",
    "PayloadShapeError",
    "require",
]
