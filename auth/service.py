"""
Auth Core — register, login and profile update.

``AuthService`` is composed once at startup from a ``PasswordHasher``, a
``TokenService`` and an ``AccountStore``.  bcrypt work runs in a worker
thread so it does not stall the event loop.

Nothing in this module logs a password, a password hash or a token.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

from auth.errors import (
    AccountNotFound,
    AlreadyExists,
    Conflict,
    Forbidden,
    InternalError,
    InvalidCredentials,
    NotFound,
    StoreError,
    Unauthorized,
    UsernameTaken,
)
from auth.jwt import TokenService
from auth.models import Account, Identity
from auth.password import PasswordHasher
from auth.store import AccountStore

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(
        self,
        hasher: PasswordHasher,
        tokens: TokenService,
        store: AccountStore,
        default_access: Dict[str, Any],
    ) -> None:
        self.hasher = hasher
        self.tokens = tokens
        self.store = store
        self.default_access = dict(default_access)

    # ── Helpers ─────────────────────────────────────────────────────────

    async def _hash(self, password: str) -> str:
        try:
            return await asyncio.to_thread(self.hasher.hash, password)
        except Exception as exc:
            logger.exception("Password hashing failed")
            raise InternalError() from exc

    async def _verify(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(self.hasher.verify, password, password_hash)

    def _issue(self, account: Account) -> str:
        return self.tokens.issue(Identity.from_account(account))

    # ── Use cases ───────────────────────────────────────────────────────

    async def register(self, username: str, password: str) -> str:
        """Create an account and return a token for it."""
        try:
            if await self.store.find_by_username(username) is not None:
                raise AlreadyExists()

            password_hash = await self._hash(password)
            try:
                account = await self.store.insert(username, password_hash, self.default_access)
            except UsernameTaken:
                # Lost the race against a concurrent registration.
                raise AlreadyExists()
        except StoreError as exc:
            logger.exception("Store failure during register")
            raise InternalError() from exc

        logger.info("Registered user %s (%s)", account.username, account.id)
        return self._issue(account)

    async def validate_user(self, username: str, password: str) -> Optional[Account]:
        """Return the account when ``password`` matches, else ``None``."""
        try:
            account = await self.store.find_by_username(username)
        except StoreError as exc:
            logger.exception("Store failure during credential check")
            raise InternalError() from exc
        if account is None:
            # Unknown usernames cost one bcrypt check, the same as a wrong password.
            await asyncio.to_thread(self.hasher.verify_dummy, password)
            return None
        if not await self._verify(password, account.password_hash):
            return None
        return account

    async def login(self, username: str, password: str) -> str:
        """Check credentials and return a fresh token."""
        account = await self.validate_user(username, password)
        if account is None:
            logger.info("Failed login attempt")
            raise InvalidCredentials()

        logger.info("Login: %s (%s)", account.username, account.id)
        return self._issue(account)

    async def update_profile(
        self,
        identity: Optional[Identity],
        new_username: Optional[str] = None,
        new_password: Optional[str] = None,
        current_password: Optional[str] = None,
    ) -> Tuple[str, Account]:
        """
        Change username and/or password of the caller's account.

        Returns the re-issued token and the updated account.
        """
        if identity is None or not identity.user_id:
            raise Unauthorized()
        if (new_username or new_password) and not current_password:
            raise Unauthorized("Current password is required to change username or password")

        try:
            account = await self.store.find_by_id(identity.user_id)
            if account is None:
                raise NotFound()

            if current_password and not await self._verify(
                current_password, account.password_hash
            ):
                raise Forbidden("Current password is incorrect")

            rename = bool(new_username) and new_username != account.username
            if rename:
                other = await self.store.find_by_username(new_username)
                if other is not None and other.id != account.id:
                    raise Conflict()

            password_hash = await self._hash(new_password) if new_password else None
            if not rename and password_hash is None:
                updated = account
            else:
                try:
                    updated = await self.store.update(
                        account.id,
                        username=new_username if rename else None,
                        password_hash=password_hash,
                    )
                except UsernameTaken:
                    raise Conflict()
                except AccountNotFound:
                    raise NotFound()
        except StoreError as exc:
            logger.exception("Store failure during profile update for %s", identity.user_id)
            raise InternalError() from exc

        logger.info("Updated profile of %s (%s)", updated.username, updated.id)
        return self._issue(updated), updated
