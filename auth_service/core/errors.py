from __future__ import annotations


class AuthError(Exception):
    """Base class for expected, user-facing authentication failures."""

    kind = "auth_error"
    default_message = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AlreadyExists(AuthError):
    kind = "already_exists"
    default_message = "Email already registered"


class NotFound(AuthError):
    kind = "not_found"
    default_message = "User not found"


class InvalidCredentials(AuthError):
    kind = "invalid_credentials"
    default_message = "Invalid credentials"


class EmailNotVerified(AuthError):
    kind = "email_not_verified"
    default_message = "Please verify your email first"


class AlreadyVerified(AuthError):
    kind = "already_verified"
    default_message = "Email already verified"


class NoChallenge(AuthError):
    kind = "no_challenge"
    default_message = "No code found. Please request a new one."


class Expired(AuthError):
    kind = "expired"
    default_message = "Code expired. Please request a new one."


class InvalidCode(AuthError):
    kind = "invalid_code"
    default_message = "Invalid code"


class InvalidToken(AuthError):
    kind = "invalid_token"
    default_message = "Invalid token"


class InvalidInput(AuthError):
    kind = "invalid_input"
    default_message = "Invalid input"


class TooSoon(AuthError):
    kind = "too_soon"

    def __init__(self, remaining_seconds: int) -> None:
        self.remaining_seconds = remaining_seconds
        super().__init__(
            f"Please wait {remaining_seconds} seconds before requesting a new code"
        )
