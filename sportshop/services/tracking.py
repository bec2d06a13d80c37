"""
Behaviour tracking with per-user session correlation.

Session state lives in an injected store owned by the application (see
``main.py``), with idle roll-over and TTL eviction.
"""
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from sportshop.models.user_behavior import UserBehavior
from sportshop.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class SessionEntry:
    session_id: str
    last_seen: datetime


class InMemorySessionStore:
    """Keyed session store; entries idle longer than ``ttl`` are evicted"""

    def __init__(self, ttl: timedelta, max_entries: int = 100_000):
        self.ttl = ttl
        self.max_entries = max_entries
        self._entries: Dict[int, SessionEntry] = {}
        self._lock = threading.Lock()

    def get(self, user_id: int, now: datetime) -> Optional[SessionEntry]:
        with self._lock:
            entry = self._entries.get(user_id)
            if entry and now - entry.last_seen > self.ttl:
                del self._entries[user_id]
                return None
            return entry

    def put(self, user_id: int, entry: SessionEntry):
        with self._lock:
            self._entries[user_id] = entry
            if len(self._entries) > self.max_entries:
                self._evict(entry.last_seen)

    def purge(self, now: datetime) -> int:
        with self._lock:
            return self._evict(now)

    def _evict(self, now: datetime) -> int:
        expired = [key for key, entry in self._entries.items() if now - entry.last_seen > self.ttl]
        for key in expired:
            del self._entries[key]
        if len(self._entries) > self.max_entries:
            # still over budget: drop the least recently seen
            overflow = sorted(self._entries.items(), key=lambda pair: pair[1].last_seen)
            for key, _ in overflow[: len(self._entries) - self.max_entries]:
                del self._entries[key]
                expired.append(key)
        return len(expired)

    def __len__(self):
        return len(self._entries)


class BehaviorTracker:
    def __init__(
        self,
        store: InMemorySessionStore,
        idle: timedelta,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.idle = idle
        self.clock = clock

    def resolve_session(self, user_id: int, now: datetime) -> str:
        """Reuse the user's session while events keep arriving within ``idle``."""
        entry = self.store.get(user_id, now)
        if entry and now - entry.last_seen <= self.idle:
            session_id = entry.session_id
        else:
            session_id = uuid.uuid4().hex
            logger.debug("New tracking session %s for user %s", session_id, user_id)
        self.store.put(user_id, SessionEntry(session_id=session_id, last_seen=now))
        return session_id

    def track(self, db: Session, user_id: int, product_id: int, product_name: str, behavior: str) -> UserBehavior:
        now = self.clock()
        event = UserBehavior(
            session_id=self.resolve_session(user_id, now),
            user_id=user_id,
            product_id=product_id,
            product_name=product_name,
            behavior=behavior,
            event_time=now,
        )
        db.add(event)
        db.commit()
        logger.info("Tracked %s on product %s for user %s (session %s)",
                    behavior, product_id, user_id, event.session_id)
        return event
