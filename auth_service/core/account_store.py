from __future__ import annotations

from threading import Lock
from typing import Protocol

from .errors import AlreadyExists, NotFound
from .models import Account


class AccountStore(Protocol):
    def create(self, account: Account) -> Account:
        ...

    def get(self, email: str) -> Account:
        ...

    def find(self, email: str) -> Account | None:
        ...

    def set_verified(self, email: str) -> Account:
        ...

    def set_password(self, email: str, password: str) -> Account:
        ...


class InMemoryAccountStore:
    def __init__(self) -> None:
        self._lock = Lock()
        self._accounts: dict[str, Account] = {}

    def create(self, account: Account) -> Account:
        with self._lock:
            if account.email in self._accounts:
                raise AlreadyExists()
            self._accounts[account.email] = account
            return account

    def get(self, email: str) -> Account:
        account = self.find(email)
        if account is None:
            raise NotFound()
        return account

    def find(self, email: str) -> Account | None:
        with self._lock:
            return self._accounts.get(email)

    def set_verified(self, email: str) -> Account:
        return self._update(email, verified=True)

    def set_password(self, email: str, password: str) -> Account:
        return self._update(email, password=password)

    def _update(self, email: str, **changes: object) -> Account:
        with self._lock:
            account = self._accounts.get(email)
            if account is None:
                raise NotFound()
            updated = account.model_copy(update=changes)
            self._accounts[email] = updated
            return updated
