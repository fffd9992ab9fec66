"""
Tests for Auth Core — register, login and profile update.
"""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from auth.errors import (
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
from auth.models import Identity
from auth.service import AuthService


async def _register(service, username="alice", password="s3cret") -> Identity:
    token = await service.register(username, password)
    return service.tokens.verify(token).identity


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_returns_verifiable_token(self, service, store):
        token = await service.register("alice", "s3cret")
        claims = service.tokens.verify(token)
        assert claims.username == "alice"
        assert claims.access == {"access1": "card1", "access2": "card2"}
        assert claims.user_id in store.accounts

    @pytest.mark.asyncio
    async def test_password_stored_hashed(self, service, store, hasher):
        await service.register("alice", "s3cret")
        (account,) = store.accounts.values()
        assert account.password_hash != "s3cret"
        assert hasher.verify("s3cret", account.password_hash)

    @pytest.mark.asyncio
    async def test_duplicate_username(self, service, store):
        await service.register("alice", "s3cret")
        with pytest.raises(AlreadyExists):
            await service.register("alice", "other")
        assert len(store.accounts) == 1

    @pytest.mark.asyncio
    async def test_store_constraint_wins_race(self, service, store):
        # Pre-check sees nothing, but the store rejects the insert.
        store.find_by_username = AsyncMock(return_value=None)
        store.insert = AsyncMock(side_effect=UsernameTaken("alice"))
        with pytest.raises(AlreadyExists):
            await service.register("alice", "s3cret")

    @pytest.mark.asyncio
    async def test_store_failure_is_internal(self, service, store):
        store.find_by_username = AsyncMock(side_effect=StoreError("down"))
        with pytest.raises(InternalError):
            await service.register("alice", "s3cret")

    @pytest.mark.asyncio
    async def test_hashing_failure_is_internal(self, service, store, hasher):
        hasher.hash = MagicMock(side_effect=RuntimeError("out of memory"))
        with pytest.raises(InternalError):
            await service.register("alice", "s3cret")
        assert store.accounts == {}

    @pytest.mark.asyncio
    async def test_credentials_never_logged(self, service, caplog):
        caplog.set_level(logging.DEBUG)
        token = await service.register("alice", "s3cret")
        await service.login("alice", "s3cret")
        with pytest.raises(InvalidCredentials):
            await service.login("alice", "wrong-pass")
        assert "s3cret" not in caplog.text
        assert "wrong-pass" not in caplog.text
        assert token not in caplog.text
        assert "$2b$" not in caplog.text


class TestLogin:
    @pytest.mark.asyncio
    async def test_register_then_login(self, service):
        await service.register("alice", "s3cret")
        token = await service.login("alice", "s3cret")
        assert service.tokens.verify(token).username == "alice"

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_user_look_alike(self, service):
        await service.register("alice", "s3cret")
        with pytest.raises(InvalidCredentials) as wrong:
            await service.login("alice", "wrong")
        with pytest.raises(InvalidCredentials) as unknown:
            await service.login("nobody", "s3cret")
        assert wrong.value.message == unknown.value.message
        assert wrong.value.status_code == unknown.value.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_user_still_runs_bcrypt(self, service, hasher):
        hasher.verify_dummy = MagicMock(return_value=False)
        with pytest.raises(InvalidCredentials):
            await service.login("nobody", "s3cret")
        hasher.verify_dummy.assert_called_once_with("s3cret")

    @pytest.mark.asyncio
    async def test_validate_user(self, service):
        await service.register("alice", "s3cret")
        assert (await service.validate_user("alice", "s3cret")).username == "alice"
        assert await service.validate_user("alice", "nope") is None
        assert await service.validate_user("bob", "s3cret") is None


class TestUpdateProfile:
    @pytest.mark.asyncio
    async def test_requires_identity(self, service):
        with pytest.raises(Unauthorized):
            await service.update_profile(None, new_username="x", current_password="y")

    @pytest.mark.asyncio
    async def test_new_password_requires_current(self, service):
        identity = await _register(service)
        with pytest.raises(Unauthorized):
            await service.update_profile(identity, new_password="n3w")

    @pytest.mark.asyncio
    async def test_new_username_requires_current(self, service):
        identity = await _register(service)
        with pytest.raises(Unauthorized):
            await service.update_profile(identity, new_username="alice2")

    @pytest.mark.asyncio
    async def test_vanished_account(self, service, store):
        identity = await _register(service)
        store.accounts.clear()
        with pytest.raises(NotFound):
            await service.update_profile(
                identity, new_username="alice2", current_password="s3cret"
            )

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, service):
        identity = await _register(service)
        with pytest.raises(Forbidden):
            await service.update_profile(
                identity, new_password="n3w", current_password="wrong"
            )

    @pytest.mark.asyncio
    async def test_username_taken_by_other_account(self, service):
        await _register(service, "bob", "hunter2")
        identity = await _register(service)
        with pytest.raises(Conflict):
            await service.update_profile(
                identity, new_username="bob", current_password="s3cret"
            )

    @pytest.mark.asyncio
    async def test_store_constraint_wins_rename_race(self, service, store):
        identity = await _register(service)
        store.update = AsyncMock(side_effect=UsernameTaken("bob"))
        with pytest.raises(Conflict):
            await service.update_profile(
                identity, new_username="bob", current_password="s3cret"
            )

    @pytest.mark.asyncio
    async def test_rename_and_new_password(self, service):
        identity = await _register(service)
        token, account = await service.update_profile(
            identity,
            new_username="alice2",
            new_password="n3w-pass",
            current_password="s3cret",
        )
        assert account.username == "alice2"
        assert account.id == identity.user_id
        assert service.tokens.verify(token).username == "alice2"

        await service.login("alice2", "n3w-pass")
        with pytest.raises(InvalidCredentials):
            await service.login("alice", "s3cret")
        with pytest.raises(InvalidCredentials):
            await service.login("alice2", "s3cret")

    @pytest.mark.asyncio
    async def test_same_username_is_not_a_conflict(self, service, store):
        identity = await _register(service)
        store.update = AsyncMock()
        token, account = await service.update_profile(
            identity, new_username="alice", current_password="s3cret"
        )
        assert account.username == "alice"
        store.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_reissued_token_carries_access(self, service):
        identity = await _register(service)
        token, _ = await service.update_profile(
            identity, new_password="n3w", current_password="s3cret"
        )
        assert service.tokens.verify(token).access == {"access1": "card1", "access2": "card2"}

    @pytest.mark.asyncio
    async def test_hashing_failure_on_new_password_is_internal(self, service, hasher):
        identity = await _register(service)
        hasher.hash = MagicMock(side_effect=RuntimeError("out of memory"))
        with pytest.raises(InternalError):
            await service.update_profile(
                identity, new_password="n3w", current_password="s3cret"
            )


class TestComposition:
    def test_collaborators_are_required(self, hasher, tokens, store):
        with pytest.raises(TypeError):
            AuthService(hasher, tokens, store)
