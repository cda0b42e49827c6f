"""
Authentication service — registration and login.

Composes the password hasher, the token service and the credential
store.  Route handlers only ever see the resulting token and a small
account summary.
"""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any, Dict

from auth.jwt import TokenService
from auth.password import (
    DEFAULT_ROUNDS,
    MAX_PASSWORD_BYTES,
    hash_password,
    verify_password,
)
from database.accounts import AccountStore
from utils.errors import AuthenticationError, ValidationError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
INVALID_CREDENTIALS = "Invalid credentials"


@lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> str:
    return hash_password("not-a-real-password", rounds)


class AuthService:
    def __init__(
        self,
        accounts: AccountStore,
        tokens: TokenService,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
    ) -> None:
        self._accounts = accounts
        self._tokens = tokens
        self._rounds = bcrypt_rounds

    def _result(self, account_id: int, username: str) -> Dict[str, Any]:
        return {
            "token": self._tokens.issue(account_id, username),
            "user": {"id": account_id, "username": username},
        }

    async def register(self, username: str, password: str) -> Dict[str, Any]:
        """
        Create an account and return ``{token, user}``.

        Input is rejected before any storage access; a taken username
        surfaces as ``DuplicateError`` from the store.
        """
        username = (username or "").strip()
        if not username or not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError("Invalid input")
        if len(password.encode()) > MAX_PASSWORD_BYTES:
            raise ValidationError("Invalid input")

        password_hash = await asyncio.to_thread(hash_password, password, self._rounds)
        user = await self._accounts.create(username, password_hash)
        logger.info("Registered user %s (%s)", user.username, user.id)
        return self._result(user.id, user.username)

    async def login(self, username: str, password: str) -> Dict[str, Any]:
        """
        Verify credentials and return ``{token, user}``.

        Unknown usernames and wrong passwords raise the same error, and
        both paths run one bcrypt check.
        """
        username = (username or "").strip()
        user = await self._accounts.get_by_username(username) if username else None

        if user is None:
            dummy = await asyncio.to_thread(_dummy_hash, self._rounds)
            await asyncio.to_thread(verify_password, password or "", dummy)
            logger.info("Failed login for %r", username)
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not await asyncio.to_thread(verify_password, password or "", user.password_hash):
            logger.info("Failed login for %r", username)
            raise AuthenticationError(INVALID_CREDENTIALS)

        logger.info("Login: %s (%s)", user.username, user.id)
        return self._result(user.id, user.username)

