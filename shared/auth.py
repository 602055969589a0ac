from __future__ import annotations

from datetime import datetime, timezone
import secrets
from typing import Callable, Protocol


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AuthCodeGenerator(Protocol):
    def generate(self) -> str:
        ...


class SixDigitAuthCodeGenerator:
    def generate(self) -> str:
        return f"{secrets.randbelow(1_000_000):06d}"


def is_six_digit_code(value: str) -> bool:
    return len(value) == 6 and value.isascii() and value.isdigit()
