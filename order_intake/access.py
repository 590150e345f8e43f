"""
access.py — Access Gate

Two small gates protect the service:

    • ContractorGate: exchanges the shared contractor access code for an opaque
      token that unlocks contractor pricing on orders.
    • AdminGate: exchanges the configured admin credentials for a session token
      carried in an HTTP-only cookie, valid for a fixed time-to-live.

Both keep their tokens in a `SessionStore`. The in-memory implementation below
is process-local; a shared cache can be dropped in for multi-process
deployments by implementing the same three methods.
"""
from __future__ import annotations

import hmac
import secrets
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from .errors import InvalidCredentials, InvalidRequest
from .logging_config import get_logger

log = get_logger(__name__)


class SessionStore(Protocol):
    def insert(self, token: str, value: Any) -> None: ...

    def lookup(self, token: str) -> Optional[Any]: ...

    def evict(self, token: str) -> None: ...


class InMemorySessionStore:
    """
    Thread-safe token registry with an optional time-to-live.

    Args:
        ttl_seconds (float | None): Lifetime of each entry; None keeps entries forever.
        clock (Callable[[], float]): Monotonic time source, injectable for tests.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = threading.Lock()

    def insert(self, token: str, value: Any) -> None:
        now = self._clock()
        expires_at = now + self.ttl_seconds if self.ttl_seconds is not None else None
        with self._lock:
            self._prune(now)
            self._entries[token] = (value, expires_at)

    def lookup(self, token: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(token)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._entries[token]
                return None
            return value

    def evict(self, token: str) -> None:
        with self._lock:
            self._entries.pop(token, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _prune(self, now: float) -> None:
        """Drop expired entries. Caller holds the lock."""
        expired = [token for token, (_, expires_at) in self._entries.items()
                   if expires_at is not None and now >= expires_at]
        for token in expired:
            del self._entries[token]


def _new_token() -> str:
    return secrets.token_urlsafe(32)


def _matches(supplied: str, expected: str) -> bool:
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


# --- Contractor gate ---

class ContractorGate:
    """Shared-code login for contractor pricing. Tokens never expire by default."""

    def __init__(self, access_code: str, store: Optional[SessionStore] = None):
        self.access_code = access_code
        self.store = store if store is not None else InMemorySessionStore()

    def issue_token(self, email: Optional[str], code: Optional[str]) -> str:
        if not email or not code:
            raise InvalidRequest("Missing email or code")
        if not _matches(code, self.access_code):
            log.warning(f"Contractor login rejected for {email}")
            raise InvalidCredentials("Invalid code")
        token = _new_token()
        self.store.insert(token, {"email": email})
        log.info(f"Contractor session issued for {email}")
        return token

    def validate(self, token: Optional[str]) -> bool:
        if not token:
            return False
        return self.store.lookup(token) is not None


# --- Admin gate ---

@dataclass(frozen=True)
class AdminSession:
    token: str
    username: str
    created_at: datetime

    def public(self) -> dict:
        return {"username": self.username, "createdAt": self.created_at.isoformat()}


class AdminGate:
    """
    Single-account admin login with expiring sessions.

    An unset password disables admin login entirely.
    """

    def __init__(self, username: str, password: Optional[str], ttl_seconds: float,
                 store: Optional[SessionStore] = None):
        self.username = username
        self.password = password
        self.ttl_seconds = ttl_seconds
        self.store = store if store is not None else InMemorySessionStore(ttl_seconds=ttl_seconds)

    def login(self, username: Optional[str], password: Optional[str]) -> AdminSession:
        if not username or not password:
            raise InvalidRequest("Username and password are required")
        if not self.password:
            log.warning("Admin login attempted but ADMIN_PASSWORD is not configured")
            raise InvalidCredentials("Invalid credentials")

        # evaluate both comparisons so timing does not reveal which one failed
        user_ok = _matches(username, self.username)
        password_ok = _matches(password, self.password)
        if not (user_ok and password_ok):
            log.warning(f"Admin login rejected for {username!r}")
            raise InvalidCredentials("Invalid credentials")

        session = AdminSession(token=_new_token(), username=self.username,
                               created_at=datetime.now(timezone.utc))
        self.store.insert(session.token, session)
        log.info(f"Admin session started for {session.username}")
        return session

    def lookup(self, token: Optional[str]) -> Optional[AdminSession]:
        if not token:
            return None
        return self.store.lookup(token)

    def logout(self, token: Optional[str]) -> None:
        if token:
            self.store.evict(token)
