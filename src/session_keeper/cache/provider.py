"""
Metadata provider contract.

The cache never talks to the chat network itself. Callers hand it a provider
(normally the live protocol connection) exposing some of:

* ``await provider.group_metadata(jid)`` -> raw group metadata mapping;
* ``await provider.group_fetch_all_participating()`` -> ``{jid: raw}``;
* ``provider.user.id`` -> the bot's own identity, used to compute
  ``is_bot_admin``.

Every capability is optional; the helpers below probe for them the same way
for any object, so lightweight fakes work in tests.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping, Protocol


class _User(Protocol):
    id: str


class GroupMetadataProvider(Protocol):
    user: _User | None

    async def group_metadata(self, jid: str) -> Mapping[str, Any]: ...

    async def group_fetch_all_participating(self) -> Mapping[str, Mapping[str, Any]]: ...


def bot_identity(provider: Any) -> str | None:
    """Return the provider's bot jid, or ``None`` when it exposes none."""

    user = getattr(provider, "user", None)
    if user is None:
        return None
    if isinstance(user, Mapping):
        return user.get("id") or None
    return getattr(user, "id", None) or None


def metadata_fetcher(provider: Any) -> Callable[[str], Awaitable[Mapping[str, Any]]] | None:
    fetch = getattr(provider, "group_metadata", None)
    return fetch if callable(fetch) else None


def participating_fetcher(
    provider: Any,
) -> Callable[[], Awaitable[Mapping[str, Mapping[str, Any]]]] | None:
    fetch = getattr(provider, "group_fetch_all_participating", None)
    return fetch if callable(fetch) else None


__all__ = [
    "GroupMetadataProvider",
    "bot_identity",
    "metadata_fetcher",
    "participating_fetcher",
]
