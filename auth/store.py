"""
Account store adapter.

``AccountStore`` is the narrow persistence interface Auth Core talks to;
``SqlAccountStore`` implements it on async SQLAlchemy.  Uniqueness of
``username`` is enforced by the table's unique index, and a violation is
reported as ``UsernameTaken`` no matter what any earlier lookup said.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from auth.errors import AccountNotFound, StoreError, UsernameTaken
from auth.models import Account
from database.models import User

logger = logging.getLogger(__name__)


class AccountStore(ABC):
    """Abstract persistence for accounts."""

    @abstractmethod
    async def find_by_username(self, username: str) -> Optional[Account]:
        ...

    @abstractmethod
    async def find_by_id(self, account_id: str) -> Optional[Account]:
        ...

    @abstractmethod
    async def insert(
        self, username: str, password_hash: str, access: Dict[str, Any]
    ) -> Account:
        """
        Create an account; the store assigns ``id`` and ``created_at``.

        Raises ``UsernameTaken`` if the username already exists.
        """
        ...

    @abstractmethod
    async def update(
        self,
        account_id: str,
        username: str | None = None,
        password_hash: str | None = None,
    ) -> Account:
        """
        Partially update an account and return the new state.

        Raises ``AccountNotFound`` for an unknown id and ``UsernameTaken``
        when the new username collides with another account.
        """
        ...


def _to_account(row: User) -> Account:
    return Account(
        id=str(row.user_id),
        username=row.username,
        password_hash=row.password_hash,
        access=dict(row.access or {}),
        created_at=row.created_at,
    )


def _parse_id(account_id: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(account_id))
    except ValueError:
        return None


class SqlAccountStore(AccountStore):
    """``AccountStore`` backed by the ``users`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_by_username(self, username: str) -> Optional[Account]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(User).where(User.username == username)
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError("lookup by username failed") from exc
        return _to_account(row) if row is not None else None

    async def find_by_id(self, account_id: str) -> Optional[Account]:
        uid = _parse_id(account_id)
        if uid is None:
            return None
        try:
            async with self._session_factory() as session:
                row = await session.get(User, uid)
        except SQLAlchemyError as exc:
            raise StoreError("lookup by id failed") from exc
        return _to_account(row) if row is not None else None

    async def insert(
        self, username: str, password_hash: str, access: Dict[str, Any]
    ) -> Account:
        row = User(
            user_id=uuid.uuid4(),
            username=username,
            password_hash=password_hash,
            access=dict(access),
        )
        try:
            async with self._session_factory() as session:
                session.add(row)
                try:
                    await session.commit()
                except IntegrityError as exc:
                    await session.rollback()
                    raise UsernameTaken(username) from exc
        except SQLAlchemyError as exc:
            raise StoreError("insert failed") from exc
        logger.debug("Inserted account %s", row.user_id)
        return _to_account(row)

    async def update(
        self,
        account_id: str,
        username: str | None = None,
        password_hash: str | None = None,
    ) -> Account:
        uid = _parse_id(account_id)
        if uid is None:
            raise AccountNotFound(account_id)
        try:
            async with self._session_factory() as session:
                row = await session.get(User, uid)
                if row is None:
                    raise AccountNotFound(account_id)
                if username is not None:
                    row.username = username
                if password_hash is not None:
                    row.password_hash = password_hash
                try:
                    await session.commit()
                except IntegrityError as exc:
                    await session.rollback()
                    raise UsernameTaken(username or "") from exc
        except SQLAlchemyError as exc:
            raise StoreError("update failed") from exc
        return _to_account(row)
