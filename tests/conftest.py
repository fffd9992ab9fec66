"""
Shared fixtures: an in-memory account store and a composed AuthService.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import pytest

from auth.errors import AccountNotFound, UsernameTaken
from auth.jwt import TokenService
from auth.models import Account
from auth.password import PasswordHasher
from auth.service import AuthService
from auth.store import AccountStore
from config.settings import Settings

TEST_SECRET = "test-secret"


class InMemoryAccountStore(AccountStore):
    """Dict-backed store that enforces username uniqueness on every write."""

    def __init__(self) -> None:
        self.accounts: Dict[str, Account] = {}

    def _clone(self, account: Account) -> Account:
        return Account(
            id=account.id,
            username=account.username,
            password_hash=account.password_hash,
            access=dict(account.access),
            created_at=account.created_at,
        )

    async def find_by_username(self, username: str) -> Optional[Account]:
        for account in self.accounts.values():
            if account.username == username:
                return self._clone(account)
        return None

    async def find_by_id(self, account_id: str) -> Optional[Account]:
        account = self.accounts.get(account_id)
        return self._clone(account) if account else None

    async def insert(
        self, username: str, password_hash: str, access: Dict[str, Any]
    ) -> Account:
        if any(a.username == username for a in self.accounts.values()):
            raise UsernameTaken(username)
        account = Account(
            id=str(uuid.uuid4()),
            username=username,
            password_hash=password_hash,
            access=dict(access),
            created_at=datetime.now(timezone.utc),
        )
        self.accounts[account.id] = account
        return self._clone(account)

    async def update(
        self,
        account_id: str,
        username: str | None = None,
        password_hash: str | None = None,
    ) -> Account:
        account = self.accounts.get(account_id)
        if account is None:
            raise AccountNotFound(account_id)
        if username is not None:
            if any(
                a.username == username and a.id != account_id
                for a in self.accounts.values()
            ):
                raise UsernameTaken(username)
            account.username = username
        if password_hash is not None:
            account.password_hash = password_hash
        return self._clone(account)


@pytest.fixture
def settings():
    return Settings(jwt_secret=TEST_SECRET, jwt_expiry_seconds=3600, bcrypt_rounds=10)


@pytest.fixture
def store():
    return InMemoryAccountStore()


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=10)


@pytest.fixture
def tokens():
    return TokenService(TEST_SECRET, 3600)


@pytest.fixture
def service(hasher, tokens, store):
    return AuthService(
        hasher, tokens, store, default_access={"access1": "card1", "access2": "card2"}
    )
