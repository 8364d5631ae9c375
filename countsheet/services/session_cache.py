from __future__ import annotations

from collections.abc import Callable, Hashable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from ..models.config_models import CountSheetConfig
from ..models.count_session import CountSession

"""Keyed session store with explicit per-key expiry.

(site_id, session_key) などのキーごとに expires_at を明示的に持つ。
暗黙の鮮度判定はしない: 期限切れの値は get 時に None を返して削除する。
"""

__all__ = [
    "CacheEntry",
    "SessionCache",
    "cache_session",
]


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: datetime


class SessionCache:
    """In-memory keyed store owned by the counting session layer."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(UTC))
        self._entries: dict[Hashable, CacheEntry] = {}

    def put(self, key: Hashable, value: Any, ttl: timedelta) -> CacheEntry:
        if ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive: {ttl}")
        entry = CacheEntry(value=value, expires_at=self._clock() + ttl)
        self._entries[key] = entry
        return entry

    def get(self, key: Hashable) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry.value

    def expires_at(self, key: Hashable) -> datetime | None:
        entry = self._entries.get(key)
        return entry.expires_at if entry is not None else None

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


def cache_session(
    cache: SessionCache, site_id: str, session: CountSession, config: CountSheetConfig
) -> CacheEntry:
    """Store a counting session under (site_id, session_id) for the configured TTL."""
    ttl = timedelta(minutes=config.session_ttl_minutes)
    return cache.put((site_id, session.session_id), session, ttl)
