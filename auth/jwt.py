"""
JWT session token creation and verification.

Tokens are compact HS256 JWTs carrying the account id (``sub``), the
username, the issue time and an expiry exactly one hour later.  There is
no server-side session store, so tokens cannot be revoked; they simply
stop verifying once expired or once the signing secret changes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_TTL = timedelta(hours=1)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionClaims:
    """Verified identity payload decoded from a token."""

    account_id: int
    username: str
    issued_at: datetime
    expires_at: datetime


def create_token(
    account_id: int,
    username: str,
    secret: str,
    now: Optional[datetime] = None,
) -> str:
    """Create a signed token for ``account_id`` valid for one hour."""
    issued = int((now or utcnow()).timestamp())
    payload: Dict[str, Any] = {
        "sub": str(account_id),
        "username": username,
        "iat": issued,
        "exp": issued + int(TOKEN_TTL.total_seconds()),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def verify_token(
    token: str,
    secret: str,
    now: Optional[datetime] = None,
) -> Optional[SessionClaims]:
    """
    Verify ``token`` and return its claims.

    Returns ``None`` for malformed, tampered, expired or otherwise
    unusable tokens; never raises.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            # Expiry is checked below against the injected clock.
            options={
                "verify_exp": False,
                "verify_iat": False,
                "require": ["sub", "iat", "exp"],
            },
        )
    except jwt.InvalidTokenError as exc:
        logger.debug("Token rejected: %s", exc)
        return None

    try:
        account_id = int(payload["sub"])
        username = payload["username"]
        issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
    except (KeyError, TypeError, ValueError, OverflowError, OSError):
        logger.debug("Token rejected: malformed claims")
        return None
    if not isinstance(username, str):
        return None

    if (now or utcnow()) >= expires_at:
        logger.debug("Token rejected: expired at %s", expires_at.isoformat())
        return None

    return SessionClaims(
        account_id=account_id,
        username=username,
        issued_at=issued_at,
        expires_at=expires_at,
    )


class TokenService:
    """Issues and verifies session tokens with a fixed secret and clock."""

    def __init__(self, secret: str, clock: Clock = utcnow) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self._clock = clock

    def issue(self, account_id: int, username: str) -> str:
        return create_token(account_id, username, self._secret, now=self._clock())

    def verify(self, token: str) -> Optional[SessionClaims]:
        return verify_token(token, self._secret, now=self._clock())
