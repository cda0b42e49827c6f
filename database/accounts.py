"""
Credential store — account persistence and lookup by username.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import User
from utils.errors import DuplicateError

logger = logging.getLogger(__name__)


class AccountStore:
    """Wraps hashed-password persistence for one request's session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, username: str, password_hash: str) -> User:
        """
        Insert a new account.

        Raises ``DuplicateError`` when the username is already taken; the
        unique constraint on ``users.username`` is the only check.
        """
        user = User(username=username, password_hash=password_hash)
        self._session.add(user)
        try:
            await self._session.flush()
        except IntegrityError:
            await self._session.rollback()
            raise DuplicateError("Username already exists")
        await self._session.commit()
        return user

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self._session.execute(
            select(User).where(User.username == username)
        )
        return result.scalar_one_or_none()
