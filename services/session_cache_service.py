"""
In-memory store for open import sessions.

A session lives between the upload and the commit while a person works
through its duplicate groups, so expiry slides: every read renews the
session's TTL. Single-process only; each session is its own entry and
shares nothing.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Optional

import structlog

if TYPE_CHECKING:
    from services.import_session_service import ImportSession

logger = structlog.get_logger(__name__)

DEFAULT_TTL_MINUTES = 30


@dataclass
class _SessionEntry:
    state: "ImportSession"
    ttl: timedelta
    expires_at: datetime


_cache: dict[str, _SessionEntry] = {}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def store_session(state: "ImportSession", ttl_minutes: int = DEFAULT_TTL_MINUTES) -> str:
    """Keep a new session, return its session_id."""
    _cleanup_expired()
    session_id = str(uuid.uuid4())
    ttl = timedelta(minutes=ttl_minutes)
    _cache[session_id] = _SessionEntry(state=state, ttl=ttl, expires_at=_now() + ttl)
    return session_id


def retrieve_session(session_id: str) -> Optional["ImportSession"]:
    """
    Session state by id, None if expired or unknown.

    A successful read pushes the expiry out by the session's TTL.
    """
    _cleanup_expired()
    entry = _cache.get(session_id)
    if entry is None:
        return None
    entry.expires_at = _now() + entry.ttl
    return entry.state


def delete_session(session_id: str) -> bool:
    """Remove a session after commit or abandon. True if it existed."""
    return _cache.pop(session_id, None) is not None


def active_sessions() -> int:
    _cleanup_expired()
    return len(_cache)


def clear() -> None:
    _cache.clear()


def _cleanup_expired() -> None:
    now = _now()
    expired = [sid for sid, entry in _cache.items() if now > entry.expires_at]
    for sid in expired:
        del _cache[sid]
    if expired:
        logger.info("import_sessions_expired", count=len(expired))
