"""
FastAPI dependencies for authentication.

Provides ``db_session`` and ``get_current_identity`` dependencies that
are used across all protected routes, plus accessors for the components
the application factory places on ``app.state``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from auth.jwt import TokenService
from auth.service import AuthService
from config.settings import Settings
from database.accounts import AccountStore
from database.session import get_db_session
from storage.blob_store import BlobStore
from utils.errors import AuthenticationError

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Identity:
    """Caller resolved from a verified bearer token."""

    account_id: int
    username: str


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_auth_service(
    session: AsyncSession = Depends(db_session),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(AccountStore(session), tokens, bcrypt_rounds=settings.bcrypt_rounds)


async def get_current_identity(
    request: Request,
    authorization: Optional[str] = Header(None, alias="Authorization"),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    """
    Extract and verify the Bearer token, returning the caller's identity.

    Verification is purely local (signature + expiry); no database
    access happens here.
    """
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        raise AuthenticationError("Unauthorized")
    token = authorization[len(_BEARER_PREFIX):].strip()
    if not token:
        raise AuthenticationError("Unauthorized")

    claims = tokens.verify(token)
    if claims is None:
        logger.debug("Rejected bearer token on %s", request.url.path)
        raise AuthenticationError("Invalid token")

    identity = Identity(account_id=claims.account_id, username=claims.username)
    request.state.identity = identity
    return identity
