"""
Auth state persistence package.

Modules
=======

``selector``
    Walks an auth directory and returns only allow-listed credential and key
    files.
``codec``
    sha256 checksums over raw bytes plus gzip/base64 encoding and the
    verifying decode.
``degrade``
    Fits an encoded selection under a byte budget through the full,
    credentials+key and credentials-only tiers.
``payload``
    :class:`~session_keeper.auth.payload.PersistedPayload`, its wire shape and
    the adapter that normalizes loaded (bare or wrapped) payloads.
``persist``
    :class:`~session_keeper.auth.persist.PersistenceClient`, the retrying
    save-then-verify store operation.
``restore``
    :class:`~session_keeper.auth.restore.RestoreClient`, the checksum-verified
    atomic write-back.
``file_store``
    Gzipped JSON files as a ready-made ``save``/``load`` pair.
"""

from .file_store import FileSessionStore
from .payload import PersistedPayload
from .persist import PersistenceClient, PersistResult
from .restore import RestoreClient, RestoreResult

__all__ = [
    "FileSessionStore",
    "PersistedPayload",
    "PersistenceClient",
    "PersistResult",
    "RestoreClient",
    "RestoreResult",
]
