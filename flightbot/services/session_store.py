"""Where a BookingSession lives between two chat turns, keyed by conversation id."""
import logging
import threading
from typing import Optional, Protocol

import redis
from pydantic import ValidationError

from flightbot.core.config import Settings
from flightbot.schemas.session import BookingSession

logger = logging.getLogger(__name__)

KEY_PREFIX = "booking-session:"


class SessionStore(Protocol):
    def load(self, conversation_id: str) -> Optional[BookingSession]: ...

    def save(self, conversation_id: str, session: BookingSession) -> None: ...

    def delete(self, conversation_id: str) -> None: ...


class InMemorySessionStore:
    """Process-local store for development and tests. Holds JSON so sessions are copied, not shared."""

    def __init__(self):
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def load(self, conversation_id: str) -> Optional[BookingSession]:
        with self._lock:
            raw = self._data.get(conversation_id)
        return BookingSession.model_validate_json(raw) if raw else None

    def save(self, conversation_id: str, session: BookingSession) -> None:
        with self._lock:
            self._data[conversation_id] = session.model_dump_json()

    def delete(self, conversation_id: str) -> None:
        with self._lock:
            self._data.pop(conversation_id, None)


class RedisSessionStore:
    def __init__(self, client: redis.Redis, ttl_seconds: int = 86400, card_ttl_seconds: int = 600):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.card_ttl_seconds = card_ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int = 86400, card_ttl_seconds: int = 600) -> "RedisSessionStore":
        logger.info("[Redis] session store at %s", url.split("@")[-1])  # host only
        client = redis.Redis.from_url(url, decode_responses=True, socket_connect_timeout=5, socket_keepalive=True)
        return cls(client, ttl_seconds, card_ttl_seconds)

    def load(self, conversation_id: str) -> Optional[BookingSession]:
        raw = self.client.get(KEY_PREFIX + conversation_id)
        if not raw:
            return None
        try:
            return BookingSession.model_validate_json(raw)
        except ValidationError:
            # written by an older schema; the conversation has to start over
            logger.warning("[Redis] discarding unreadable session for %s", conversation_id)
            self.client.delete(KEY_PREFIX + conversation_id)
            return None

    def save(self, conversation_id: str, session: BookingSession) -> None:
        ttl = self.ttl_seconds
        if session.holds_card_data:
            # card details get the short TTL
            ttl = min(ttl, self.card_ttl_seconds)
        self.client.set(KEY_PREFIX + conversation_id, session.model_dump_json(), ex=ttl)

    def delete(self, conversation_id: str) -> None:
        self.client.delete(KEY_PREFIX + conversation_id)


def build_session_store(cfg: Settings) -> SessionStore:
    if cfg.SESSION_BACKEND == "redis":
        return RedisSessionStore.from_url(cfg.REDIS_URL, cfg.SESSION_TTL_SECONDS, cfg.CARD_DATA_TTL_SECONDS)
    return InMemorySessionStore()
