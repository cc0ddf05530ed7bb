"""
In-memory session registry with bounded retention.

Sessions live for ``SESSION_TTL_SEC`` after their last use and at most
``MAX_SESSIONS`` are kept; the least recently used idle session is
evicted first. Each session has its own asyncio.Lock, and state changes
happen only while it is held:

    async with store.locked(session_id) as session:
        ...check status, call out, record result...
"""

import asyncio
import logging
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Optional

from card_agent.config import SessionConfig, settings
from card_agent.errors import InvalidStateError, NotFoundError
from card_agent.schemas.session_schema import Session

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    session: Session
    last_used: float
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class SessionStore:
    """Keyed by session id only; no secondary indices."""

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or settings.sessions
        self._clock = clock
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self._closed = False

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._entries

    def _is_expired(self, entry: _Entry) -> bool:
        return self._clock() - entry.last_used > self._config.ttl_sec

    def evict_expired(self) -> int:
        """Drop idle sessions unused for longer than the TTL. Returns how many were dropped."""
        expired = [
            sid for sid, entry in self._entries.items()
            if self._is_expired(entry) and not entry.lock.locked()
        ]
        for sid in expired:
            del self._entries[sid]
        if expired:
            logger.info("Evicted %d expired session(s)", len(expired))
        return len(expired)

    def _evict_least_recent(self) -> bool:
        for sid, entry in self._entries.items():
            if not entry.lock.locked():
                del self._entries[sid]
                logger.info("Session store full, evicted least recently used session %s", sid)
                return True
        return False

    def add(self, session: Session) -> None:
        if self._closed:
            raise InvalidStateError("Session store is closed")
        if session.session_id in self._entries:
            raise InvalidStateError(
                "Session already exists", context={"session_id": session.session_id}
            )
        self.evict_expired()
        while len(self._entries) >= self._config.max_sessions:
            if not self._evict_least_recent():
                break
        self._entries[session.session_id] = _Entry(session=session, last_used=self._clock())
        logger.debug("Session stored: %s (%d active)", session.session_id, len(self._entries))

    def _entry(self, session_id: str) -> _Entry:
        entry = self._entries.get(session_id)
        if entry is not None and self._is_expired(entry) and not entry.lock.locked():
            del self._entries[session_id]
            entry = None
        if entry is None:
            raise NotFoundError("Session not found", context={"session_id": session_id})
        self._touch(session_id, entry)
        return entry

    def _touch(self, session_id: str, entry: _Entry) -> None:
        entry.last_used = self._clock()
        self._entries.move_to_end(session_id)

    def get(self, session_id: str) -> Session:
        """Lookup that counts as use. Raises NotFoundError for unknown or expired ids."""
        return self._entry(session_id).session

    @asynccontextmanager
    async def locked(self, session_id: str) -> AsyncIterator[Session]:
        """Hold the session's lock for the duration of the block."""
        entry = self._entry(session_id)
        async with entry.lock:
            if self._entries.get(session_id) is not entry:
                raise NotFoundError("Session not found", context={"session_id": session_id})
            try:
                yield entry.session
            finally:
                if self._entries.get(session_id) is entry:
                    self._touch(session_id, entry)

    def close(self) -> None:
        """Drop every session and refuse new ones."""
        self._entries.clear()
        self._closed = True
        logger.debug("Session store closed")
