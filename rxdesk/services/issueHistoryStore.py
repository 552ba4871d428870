"""
Issue History Store
===================

Server-side first-seen / last-seen tracker for dashboard issues, kept in a
single Redis hash so every admin browser and every API instance sees the same
history.

Layout::

    HASH  rxdesk:issue-history
      field  = issue signature (e.g. "api-error-Stripe Payment API")
      value  = JSON {"severity", "title", "description", "first_seen", "last_seen"}

Each poll is a read-modify-write: ``load`` the hash, reconcile in Python,
then ``save`` the new map. Concurrent pollers are last-write-wins, which is
acceptable for an advisory display.
"""

from __future__ import annotations

import json
import logging
from typing import Mapping

import redis.asyncio as aioredis

from rxdesk.core.config import settings

logger = logging.getLogger(__name__)


class IssueHistoryStore:
    def __init__(self, client: aioredis.Redis, key: str = settings.issue_history_key) -> None:
        self._client = client
        self._key = key

    async def load(self) -> dict[str, dict[str, str]]:
        raw = await self._client.hgetall(self._key)
        history: dict[str, dict[str, str]] = {}
        for field, value in raw.items():
            try:
                history[field] = json.loads(value)
            except (TypeError, ValueError):
                logger.warning("Dropping unreadable issue history entry %r", field)
        return history

    async def save(
        self,
        new_history: Mapping[str, Mapping[str, str]],
        previous_keys: set[str] | None = None,
    ) -> None:
        """Replace the stored map with ``new_history``.

        ``previous_keys`` (the fields seen at ``load`` time) lets stale fields
        be removed with HDEL instead of rewriting the whole hash.
        """
        stale = (previous_keys or set()) - set(new_history)
        async with self._client.pipeline(transaction=True) as pipe:
            if stale:
                pipe.hdel(self._key, *stale)
            if new_history:
                pipe.hset(
                    self._key,
                    mapping={k: json.dumps(v) for k, v in new_history.items()},
                )
            await pipe.execute()


# ---------------------------------------------------------------------------
# Shared instance
# ---------------------------------------------------------------------------

_store: IssueHistoryStore | None = None
_client: aioredis.Redis | None = None


def get_history_store() -> IssueHistoryStore:
    """Return the process-wide store, connecting lazily on first use."""
    global _store, _client
    if _store is None:
        _client = aioredis.from_url(settings.redis_url, decode_responses=True)
        _store = IssueHistoryStore(_client)
    return _store


def set_history_store(store: IssueHistoryStore | None) -> None:
    """Override the shared store (used by tests)."""
    global _store
    _store = store


async def close_history_store() -> None:
    global _store, _client
    if _client is not None:
        await _client.aclose()
    _client = None
    _store = None
