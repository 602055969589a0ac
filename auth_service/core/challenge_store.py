from __future__ import annotations

from datetime import datetime, timedelta
from threading import Lock
from typing import Protocol

from .errors import NoChallenge
from .models import Challenge, ChallengePurpose


ChallengeKey = tuple[ChallengePurpose, str]


class ChallengeStore(Protocol):
    def issue(
        self,
        purpose: ChallengePurpose,
        email: str,
        code: str,
        now: datetime,
        ttl: timedelta,
    ) -> Challenge:
        ...

    def peek(self, purpose: ChallengePurpose, email: str) -> Challenge:
        ...

    def consume(self, purpose: ChallengePurpose, email: str) -> Challenge:
        ...


class InMemoryChallengeStore:
    """One live challenge per (purpose, email).

    Expiry is left to the caller: an expired challenge stays here until it is
    consumed or replaced.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._challenges: dict[ChallengeKey, Challenge] = {}

    def issue(
        self,
        purpose: ChallengePurpose,
        email: str,
        code: str,
        now: datetime,
        ttl: timedelta,
    ) -> Challenge:
        challenge = Challenge(
            purpose=purpose,
            email=email,
            code=code,
            issued_at=now,
            expires_at=now + ttl,
        )
        with self._lock:
            self._challenges[(purpose, email)] = challenge
        return challenge

    def peek(self, purpose: ChallengePurpose, email: str) -> Challenge:
        with self._lock:
            challenge = self._challenges.get((purpose, email))
        if challenge is None:
            raise NoChallenge()
        return challenge

    def consume(self, purpose: ChallengePurpose, email: str) -> Challenge:
        with self._lock:
            challenge = self._challenges.pop((purpose, email), None)
        if challenge is None:
            raise NoChallenge()
        return challenge
