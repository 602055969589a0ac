from __future__ import annotations

from datetime import datetime, timedelta
from threading import Lock
from typing import Protocol
from uuid import uuid4

from .errors import Expired, InvalidToken
from .models import Session


class SessionStore(Protocol):
    def issue(self, email: str, now: datetime, ttl: timedelta) -> Session:
        ...

    def resolve(self, token: str, now: datetime) -> str:
        ...

    def issue_refresh(self, email: str) -> str:
        ...

    def refresh_owner(self, refresh_token: str) -> str | None:
        ...

    def revoke_for(self, email: str) -> int:
        ...

    def prune(self, now: datetime) -> int:
        ...


def new_token() -> str:
    return uuid4().hex


class InMemorySessionStore:
    """Access tokens with lazy expiry, plus the refresh identifiers handed out with them.

    ``resolve`` is a pure read: expired sessions stay until ``prune`` drops them.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._sessions: dict[str, Session] = {}
        self._refresh_owners: dict[str, str] = {}

    def issue(self, email: str, now: datetime, ttl: timedelta) -> Session:
        with self._lock:
            token = new_token()
            while token in self._sessions:
                token = new_token()
            session = Session(token=token, email=email, issued_at=now, expires_at=now + ttl)
            self._sessions[token] = session
            return session

    def resolve(self, token: str, now: datetime) -> str:
        with self._lock:
            session = self._sessions.get(token)
        if session is None:
            raise InvalidToken()
        if session.is_expired(now):
            raise Expired("Token expired")
        return session.email

    def issue_refresh(self, email: str) -> str:
        with self._lock:
            refresh_token = new_token()
            while refresh_token in self._refresh_owners:
                refresh_token = new_token()
            self._refresh_owners[refresh_token] = email
            return refresh_token

    def refresh_owner(self, refresh_token: str) -> str | None:
        with self._lock:
            return self._refresh_owners.get(refresh_token)

    def revoke_for(self, email: str) -> int:
        with self._lock:
            tokens = [token for token, session in self._sessions.items() if session.email == email]
            for token in tokens:
                del self._sessions[token]
            return len(tokens)

    def prune(self, now: datetime) -> int:
        with self._lock:
            expired = [token for token, session in self._sessions.items() if session.is_expired(now)]
            for token in expired:
                del self._sessions[token]
            return len(expired)
