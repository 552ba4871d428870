"""
Bearer token service
====================

Patients, providers and admins sign in through the storefront's identity
provider; the admin API only needs to issue and verify the short-lived
bearer tokens the dashboards send. Tokens are HS256 JWTs (PyJWT) whose
``sub`` is ``users.id``.

Key functions:
  - create_access_token   -- sign a token for a user id
  - resolve_token_user    -- verify a token and load the active user behind it
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rxdesk.core.config import settings
from rxdesk.models.user import User, UserStatus

TOKEN_TTL = timedelta(minutes=30)
TOKEN_TYPE = "access"

_BLOCKED_STATUSES = frozenset({UserStatus.SUSPENDED, UserStatus.DEACTIVATED})


class TokenError(ValueError):
    """The bearer token cannot be used to identify an active user."""


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------

def create_access_token(
    user_id: uuid.UUID,
    ttl: Optional[timedelta] = None,
) -> tuple[str, datetime]:
    """Return ``(token, expires_at)`` for ``user_id``."""
    now = datetime.now(timezone.utc)
    expires_at = now + (ttl or TOKEN_TTL)
    claims = {
        "sub": str(user_id),
        "type": TOKEN_TYPE,
        "iat": now,
        "exp": expires_at,
        "jti": uuid.uuid4().hex,
    }
    encoded = jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return encoded, expires_at


def _verified_claims(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("Access token has expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError("Invalid access token.") from exc


def _subject(claims: dict[str, Any]) -> uuid.UUID:
    if claims.get("type") != TOKEN_TYPE:
        raise TokenError("Invalid token type. Expected an access token.")
    try:
        return uuid.UUID(str(claims["sub"]))
    except (KeyError, ValueError) as exc:
        raise TokenError("Invalid token subject.") from exc


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

async def resolve_token_user(db: AsyncSession, token: str) -> User:
    """Verify ``token`` and return its user.

    Raises:
        TokenError: bad signature, expired, wrong type, unknown or blocked user.
    """
    user_id = _subject(_verified_claims(token))

    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is None:
        raise TokenError("User not found.")
    if user.status in _BLOCKED_STATUSES:
        raise TokenError("Account is no longer active.")
    return user
