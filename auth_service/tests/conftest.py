from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import pytest

from auth_service.core.models import ChallengePurpose
from auth_service.core.service import AuthEngine


@dataclass
class FakeClock:
    now: datetime

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@dataclass
class FakeCodeGenerator:
    codes: list[str] = field(default_factory=list)
    issued: list[str] = field(default_factory=list)
    _counter: int = 100000

    def generate(self) -> str:
        if self.codes:
            code = self.codes.pop(0)
        else:
            self._counter += 1
            code = f"{self._counter:06d}"
        self.issued.append(code)
        return code


@dataclass
class RecordingDelivery:
    sent: list[dict[str, object]] = field(default_factory=list)

    def deliver(self, purpose: ChallengePurpose, email: str, code: str) -> None:
        self.sent.append({"purpose": purpose, "email": email, "code": code})

    def last_code(self, purpose: ChallengePurpose, email: str) -> str:
        for entry in reversed(self.sent):
            if entry["purpose"] == purpose and entry["email"] == email:
                return str(entry["code"])
        raise AssertionError(f"no {purpose.value} code delivered to {email}")


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)


@pytest.fixture
def code_generator() -> FakeCodeGenerator:
    return FakeCodeGenerator()


@pytest.fixture
def delivery() -> RecordingDelivery:
    return RecordingDelivery()


@pytest.fixture
def engine(clock, code_generator, delivery) -> AuthEngine:
    return AuthEngine(clock=clock, code_generator=code_generator, delivery=delivery)


@pytest.fixture
def verified_account(engine, delivery) -> dict[str, str]:
    engine.register(email="ann@example.com", password="pw123456", name="Ann")
    code = delivery.last_code(ChallengePurpose.EMAIL_VERIFY, "ann@example.com")
    engine.verify_email(email="ann@example.com", code=code)
    return {"email": "ann@example.com", "password": "pw123456", "name": "Ann"}
