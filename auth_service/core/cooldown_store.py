from __future__ import annotations

import math
from datetime import datetime, timedelta
from threading import Lock
from typing import Protocol

from .errors import TooSoon
from .models import ChallengePurpose


CooldownKey = tuple[ChallengePurpose, str]


class CooldownTracker(Protocol):
    def try_mark(
        self,
        purpose: ChallengePurpose,
        email: str,
        now: datetime,
        window: timedelta,
    ) -> None:
        ...

    def clear(self, purpose: ChallengePurpose, email: str) -> None:
        ...


class InMemoryCooldownTracker:
    def __init__(self) -> None:
        self._lock = Lock()
        self._last_issued: dict[CooldownKey, datetime] = {}

    def try_mark(
        self,
        purpose: ChallengePurpose,
        email: str,
        now: datetime,
        window: timedelta,
    ) -> None:
        key = (purpose, email)
        with self._lock:
            last_issued_at = self._last_issued.get(key)
            if last_issued_at is not None:
                remaining = (window - (now - last_issued_at)).total_seconds()
                if remaining > 0:
                    raise TooSoon(math.ceil(remaining))
            self._last_issued[key] = now

    def clear(self, purpose: ChallengePurpose, email: str) -> None:
        with self._lock:
            self._last_issued.pop((purpose, email), None)
