"""
Session state store -- per-tenant, per-session conversational state with TTL.

Responsibility:
    Holds the small amount of state a multi-turn caller accumulates between
    requests (last document type hint, pending follow-up questions, the last
    preview id).  Entries are keyed by (tenant_id, session_id) and lapse
    ``ttl_seconds`` after their last write.

Architecture position:
    Kernel > Domain.  In-process only; instances are created by the
    application and passed explicitly to whatever handles a request.  There
    is no module-level store.

Invariants enforced:
    - A tenant can never read another tenant's session, even with the same
      session id.
    - get() never returns an expired entry.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from lekka_kernel.domain.clock import Clock, SystemClock


@dataclass
class _Entry:
    values: dict[str, Any] = field(default_factory=dict)
    expires_at: datetime | None = None


class SessionStateStore:
    """
    Thread-safe TTL map of session state.

    Contract:
        put/update refresh the entry's expiry; get returns a copy so callers
        cannot mutate stored state without writing it back.

    Non-goals:
        - No persistence or cross-process sharing.
    """

    def __init__(self, ttl_seconds: int = 3600, clock: Clock | None = None):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or SystemClock()
        self._entries: dict[tuple[str, str], _Entry] = {}
        self._lock = threading.Lock()

    def _live(self, key: tuple[str, str], now: datetime) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= now:
            del self._entries[key]
            return None
        return entry

    def get(self, tenant_id: str, session_id: str) -> dict[str, Any]:
        with self._lock:
            entry = self._live((tenant_id, session_id), self._clock.now())
            return dict(entry.values) if entry else {}

    def put(self, tenant_id: str, session_id: str, values: dict[str, Any]) -> None:
        now = self._clock.now()
        with self._lock:
            self._entries[(tenant_id, session_id)] = _Entry(dict(values), now + self._ttl)

    def update(
        self,
        tenant_id: str,
        session_id: str,
        mutate: Callable[[dict[str, Any]], None],
    ) -> dict[str, Any]:
        """Apply ``mutate`` to the live state atomically and return the result."""
        now = self._clock.now()
        key = (tenant_id, session_id)
        with self._lock:
            entry = self._live(key, now) or _Entry()
            values = dict(entry.values)
            mutate(values)
            self._entries[key] = _Entry(values, now + self._ttl)
            return dict(values)

    def discard(self, tenant_id: str, session_id: str) -> None:
        with self._lock:
            self._entries.pop((tenant_id, session_id), None)

    def evict_expired(self) -> int:
        now = self._clock.now()
        with self._lock:
            expired = [
                key for key, entry in self._entries.items()
                if entry.expires_at is not None and entry.expires_at <= now
            ]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
