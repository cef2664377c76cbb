"""
Session durability and group metadata caching for multi-session chat bots.

Subpackages
===========

``cache``
    Bounded, TTL'd per-session cache of compact group records with inflight
    fetch coalescing, byte accounting and a background janitor.
``auth``
    Allow-listed auth file selection, gzip/base64/sha256 codec, size-budget
    degradation and the retrying persist / verified restore clients.
``config``
    Settings objects backed by ``config.toml`` and environment variables.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
