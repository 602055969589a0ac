from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from threading import Lock
from typing import Iterator

from shared.auth import AuthCodeGenerator, Clock, SixDigitAuthCodeGenerator, is_six_digit_code, utc_now

from .account_store import AccountStore, InMemoryAccountStore
from .challenge_store import ChallengeStore, InMemoryChallengeStore
from .cooldown_store import CooldownTracker, InMemoryCooldownTracker
from .delivery import CodeDelivery, LoggingCodeDelivery
from .errors import (
    AlreadyVerified,
    EmailNotVerified,
    Expired,
    InvalidCode,
    InvalidCredentials,
    InvalidInput,
    InvalidToken,
    NoChallenge,
)
from .models import (
    Account,
    ChallengePurpose,
    LoginResult,
    MeResult,
    MessageResult,
    RefreshResult,
    RegisterResult,
)
from .session_store import InMemorySessionStore, SessionStore, new_token

logger = logging.getLogger(__name__)


REGISTERED_MESSAGE = "Registration successful. Please verify your email."
VERIFIED_MESSAGE = "Email verified successfully!"
RESENT_MESSAGE = "Verification code sent!"
FORGOT_PASSWORD_MESSAGE = "If the email exists, a reset code has been sent."
PASSWORD_RESET_MESSAGE = "Password reset successfully!"


class KeyedLocks:
    """Hands out one lock per key so operations on the same email serialize.

    An entry lives only while some caller holds or waits on it, so unknown
    emails do not accumulate.
    """

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[str, list] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class AuthEngine:
    def __init__(
        self,
        *,
        accounts: AccountStore | None = None,
        challenges: ChallengeStore | None = None,
        cooldowns: CooldownTracker | None = None,
        sessions: SessionStore | None = None,
        code_generator: AuthCodeGenerator | None = None,
        delivery: CodeDelivery | None = None,
        clock: Clock | None = None,
        challenge_ttl: timedelta = timedelta(minutes=10),
        resend_cooldown: timedelta = timedelta(seconds=60),
        session_ttl: timedelta = timedelta(hours=1),
        min_password_length: int = 8,
        strict_refresh_tokens: bool = False,
        revoke_sessions_on_reset: bool = False,
    ) -> None:
        self.accounts = accounts or InMemoryAccountStore()
        self.challenges = challenges or InMemoryChallengeStore()
        self.cooldowns = cooldowns or InMemoryCooldownTracker()
        self.sessions = sessions or InMemorySessionStore()
        self.code_generator = code_generator or SixDigitAuthCodeGenerator()
        self.delivery = delivery or LoggingCodeDelivery()
        self.clock = clock or utc_now
        self.challenge_ttl = challenge_ttl
        self.resend_cooldown = resend_cooldown
        self.session_ttl = session_ttl
        self.min_password_length = min_password_length
        self.strict_refresh_tokens = strict_refresh_tokens
        self.revoke_sessions_on_reset = revoke_sessions_on_reset
        self._email_locks = KeyedLocks()

    # ---------- Registration & verification ----------

    def register(self, *, email: str, password: str, name: str) -> RegisterResult:
        self._require_email(email)
        self._require_new_password(password)
        if not name or not name.strip():
            raise InvalidInput("Name is required")

        code = self.code_generator.generate()
        with self._email_locks.hold(email):
            now = self.clock()
            account = self.accounts.create(
                Account(email=email, name=name, password=password, verified=False, created_at=now)
            )
            self._record_challenge(ChallengePurpose.EMAIL_VERIFY, email, code, now)

        logger.info("Registered account email=%s", email)
        self._deliver(ChallengePurpose.EMAIL_VERIFY, email, code)
        return RegisterResult(message=REGISTERED_MESSAGE, user=account.public_view())

    def verify_email(self, *, email: str, code: str) -> MessageResult:
        self._require_email(email)
        self._require_code(code)

        with self._email_locks.hold(email):
            self.accounts.get(email)
            self._redeem_challenge(ChallengePurpose.EMAIL_VERIFY, email, code, self.clock())
            self.accounts.set_verified(email)

        logger.info("Verified email=%s", email)
        return MessageResult(message=VERIFIED_MESSAGE)

    def resend_verification(self, *, email: str) -> MessageResult:
        self._require_email(email)

        with self._email_locks.hold(email):
            account = self.accounts.get(email)
            if account.verified:
                raise AlreadyVerified()
            code = self.code_generator.generate()
            now = self.clock()
            self.cooldowns.try_mark(ChallengePurpose.EMAIL_VERIFY, email, now, self.resend_cooldown)
            try:
                self._record_challenge(ChallengePurpose.EMAIL_VERIFY, email, code, now)
            except Exception:
                self.cooldowns.clear(ChallengePurpose.EMAIL_VERIFY, email)
                raise

        self._deliver(ChallengePurpose.EMAIL_VERIFY, email, code)
        return MessageResult(message=RESENT_MESSAGE)

    # ---------- Sessions ----------

    def login(self, *, email: str, password: str) -> LoginResult:
        self._require_email(email)
        if not password:
            raise InvalidInput("Password is required")

        with self._email_locks.hold(email):
            account = self.accounts.find(email)
            if account is None or account.password != password:
                logger.info("Login rejected email=%s", email)
                raise InvalidCredentials()
            if not account.verified:
                raise EmailNotVerified()
            session = self.sessions.issue(email, self.clock(), self.session_ttl)
            refresh_token = self.sessions.issue_refresh(email)

        return LoginResult(
            access_token=session.token,
            refresh_token=refresh_token,
            expires_at=session.expires_at,
            user=account.public_view(),
        )

    def refresh(self, *, refresh_token: str) -> RefreshResult:
        if not refresh_token:
            raise InvalidInput("Refresh token is required")

        now = self.clock()
        owner = self.sessions.refresh_owner(refresh_token)
        if owner is not None:
            session = self.sessions.issue(owner, now, self.session_ttl)
            return RefreshResult(
                access_token=session.token,
                refresh_token=refresh_token,
                expires_at=session.expires_at,
            )

        if self.strict_refresh_tokens:
            raise InvalidToken("Invalid refresh token")

        # Unknown identifiers still get a token, but it resolves to no account.
        logger.warning("Refresh with unrecognised refresh token; issuing unbound access token")
        return RefreshResult(
            access_token=new_token(),
            refresh_token=refresh_token,
            expires_at=now + self.session_ttl,
        )

    def me(self, *, access_token: str) -> MeResult:
        if not access_token:
            raise InvalidToken()
        email = self.sessions.resolve(access_token, self.clock())
        account = self.accounts.find(email)
        if account is None:
            raise InvalidToken()
        return MeResult(user=account.public_view())

    # ---------- Password recovery ----------

    def forgot_password(self, *, email: str) -> MessageResult:
        self._require_email(email)

        code = None
        with self._email_locks.hold(email):
            if self.accounts.find(email) is not None:
                code = self.code_generator.generate()
                self._record_challenge(ChallengePurpose.PASSWORD_RESET, email, code, self.clock())

        if code is not None:
            self._deliver(ChallengePurpose.PASSWORD_RESET, email, code)
        return MessageResult(message=FORGOT_PASSWORD_MESSAGE)

    def reset_password(self, *, email: str, code: str, new_password: str) -> MessageResult:
        self._require_email(email)
        self._require_code(code)
        self._require_new_password(new_password)

        with self._email_locks.hold(email):
            self.accounts.get(email)
            self._redeem_challenge(ChallengePurpose.PASSWORD_RESET, email, code, self.clock())
            self.accounts.set_password(email, new_password)
            revoked = self.sessions.revoke_for(email) if self.revoke_sessions_on_reset else 0

        logger.info("Password reset email=%s revoked_sessions=%d", email, revoked)
        return MessageResult(message=PASSWORD_RESET_MESSAGE)

    # ---------- Housekeeping ----------

    def prune_expired_sessions(self) -> int:
        # Recently expired tokens stay so Me can still report them as expired.
        removed = self.sessions.prune(self.clock() - self.session_ttl)
        if removed:
            logger.info("Pruned %d expired sessions", removed)
        return removed

    # ---------- Internals ----------

    def _record_challenge(self, purpose: ChallengePurpose, email: str, code: str, now: datetime) -> None:
        challenge = self.challenges.issue(purpose, email, code, now, self.challenge_ttl)
        logger.info("Issued %s challenge email=%s expires_at=%s", purpose.value, email, challenge.expires_at)

    def _redeem_challenge(self, purpose: ChallengePurpose, email: str, code: str, now: datetime) -> None:
        try:
            challenge = self.challenges.peek(purpose, email)
        except NoChallenge:
            raise NoChallenge(_no_challenge_message(purpose)) from None

        if challenge.is_expired(now):
            self.challenges.consume(purpose, email)
            raise Expired(_expired_message(purpose))

        if challenge.code != code:
            raise InvalidCode(_invalid_code_message(purpose))

        self.challenges.consume(purpose, email)

    def _deliver(self, purpose: ChallengePurpose, email: str, code: str) -> None:
        try:
            self.delivery.deliver(purpose, email, code)
        except Exception:
            logger.exception("Failed delivering %s code to %s", purpose.value, email)

    def _require_email(self, email: str) -> None:
        if not email or not email.strip():
            raise InvalidInput("Email is required")

    def _require_code(self, code: str) -> None:
        if not code or not is_six_digit_code(code):
            raise InvalidInput("Code must be 6 digits")

    def _require_new_password(self, password: str) -> None:
        if not password:
            raise InvalidInput("Password is required")
        if len(password) < self.min_password_length:
            raise InvalidInput(
                f"Password must be at least {self.min_password_length} characters"
            )


def _no_challenge_message(purpose: ChallengePurpose) -> str:
    if purpose == ChallengePurpose.PASSWORD_RESET:
        return "No reset code found. Please request a new one."
    return "No verification code found. Please request a new one."


def _expired_message(purpose: ChallengePurpose) -> str:
    if purpose == ChallengePurpose.PASSWORD_RESET:
        return "Reset code expired. Please request a new one."
    return "Verification code expired. Please request a new one."


def _invalid_code_message(purpose: ChallengePurpose) -> str:
    if purpose == ChallengePurpose.PASSWORD_RESET:
        return "Invalid reset code"
    return "Invalid verification code"

