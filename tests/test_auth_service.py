"""
Tests for AuthService with a mocked credential store.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from auth.jwt import TokenService
from auth.password import hash_password
from auth.service import AuthService
from utils.errors import AuthenticationError, DuplicateError, ValidationError

SECRET = "service-test-secret-with-enough-length"


def _service(accounts) -> AuthService:
    return AuthService(accounts, TokenService(SECRET), bcrypt_rounds=4)


def _accounts(existing=None):
    accounts = MagicMock()
    accounts.get_by_username = AsyncMock(return_value=existing)
    accounts.create = AsyncMock(
        side_effect=lambda username, password_hash: SimpleNamespace(
            id=1, username=username, password_hash=password_hash,
        )
    )
    return accounts


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_returns_token_for_new_account(self):
        accounts = _accounts()
        result = await _service(accounts).register("alice", "secret1")

        assert result["user"] == {"id": 1, "username": "alice"}
        claims = TokenService(SECRET).verify(result["token"])
        assert claims.account_id == 1
        assert claims.username == "alice"

        stored_hash = accounts.create.await_args.args[1]
        assert stored_hash != "secret1"
        assert stored_hash.startswith("$2")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("username,password", [
        ("alice", ""),
        ("alice", "12345"),
        ("", "secret1"),
        ("   ", "secret1"),
    ])
    async def test_invalid_input_never_touches_store(self, username, password):
        accounts = _accounts()
        with pytest.raises(ValidationError):
            await _service(accounts).register(username, password)
        accounts.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_username_propagates(self):
        accounts = _accounts()
        accounts.create = AsyncMock(side_effect=DuplicateError("Username already exists"))
        with pytest.raises(DuplicateError):
            await _service(accounts).register("alice", "secret1")


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success(self):
        user = SimpleNamespace(id=5, username="alice", password_hash=hash_password("secret1", rounds=4))
        result = await _service(_accounts(existing=user)).login("alice", "secret1")

        assert result["user"] == {"id": 5, "username": "alice"}
        assert TokenService(SECRET).verify(result["token"]).account_id == 5

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_user_are_indistinguishable(self):
        user = SimpleNamespace(id=5, username="alice", password_hash=hash_password("secret1", rounds=4))

        with pytest.raises(AuthenticationError) as wrong_password:
            await _service(_accounts(existing=user)).login("alice", "wrong")
        with pytest.raises(AuthenticationError) as unknown_user:
            await _service(_accounts(existing=None)).login("nobody", "secret1")

        assert wrong_password.value.message == unknown_user.value.message
        assert wrong_password.value.status_code == unknown_user.value.status_code == 401

    @pytest.mark.asyncio
    async def test_corrupt_stored_hash_is_a_failed_login(self):
        user = SimpleNamespace(id=5, username="alice", password_hash="garbage")
        with pytest.raises(AuthenticationError):
            await _service(_accounts(existing=user)).login("alice", "secret1")
