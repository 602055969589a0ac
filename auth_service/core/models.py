from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class ChallengePurpose(str, Enum):
    EMAIL_VERIFY = "email_verify"
    PASSWORD_RESET = "password_reset"


class Account(BaseModel):
    email: str
    name: str
    password: str
    verified: bool = False
    created_at: datetime

    def public_view(self) -> PublicAccount:
        return PublicAccount(email=self.email, name=self.name, created_at=self.created_at)


class PublicAccount(BaseModel):
    email: str
    name: str
    created_at: datetime


@dataclass(frozen=True)
class Challenge:
    purpose: ChallengePurpose
    email: str
    code: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class Session:
    token: str
    email: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class MessageResult(BaseModel):
    message: str


class RegisterResult(MessageResult):
    user: PublicAccount


class LoginResult(BaseModel):
    access_token: str
    refresh_token: str
    expires_at: datetime
    user: PublicAccount


class RefreshResult(BaseModel):
    access_token: str
    refresh_token: str
    expires_at: datetime


class MeResult(BaseModel):
    user: PublicAccount
