from __future__ import annotations

import logging
from typing import Protocol

from .models import ChallengePurpose

logger = logging.getLogger(__name__)


class CodeDelivery(Protocol):
    def deliver(self, purpose: ChallengePurpose, email: str, code: str) -> None:
        ...


def format_code_message(purpose: ChallengePurpose, code: str) -> str:
    if purpose == ChallengePurpose.PASSWORD_RESET:
        return f"Your password reset code is {code}."
    return f"Your verification code is {code}."


class LoggingCodeDelivery:
    def deliver(self, purpose: ChallengePurpose, email: str, code: str) -> None:
        logger.warning("%s code for %s: %s", purpose.value, email, code)
