"""
Shared FastAPI dependencies for the RxDesk backend.

Provides the async database session dependency used by all route handlers,
and authentication dependencies for extracting the current user (and their
provider or admin role) from JWT Bearer tokens.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from rxdesk.core.config import settings
from rxdesk.models.provider import ProviderProfile
from rxdesk.models.user import User

# ---------------------------------------------------------------------------
# Async engine & session factory
# ---------------------------------------------------------------------------
# The engine is created once at module import time.  The session factory
# produces lightweight ``AsyncSession`` instances that are scoped to a single
# request via the ``get_db`` dependency below.
# ---------------------------------------------------------------------------

engine = create_async_engine(
    settings.database_url,
    echo=settings.sql_echo,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session that commits when the request
    succeeds and rolls back when it raises.

    Usage in a route::

        @router.get("/items")
        async def list_items(db: DBSession):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ---------------------------------------------------------------------------
# Annotated type alias for convenience
# ---------------------------------------------------------------------------
DBSession = Annotated[AsyncSession, Depends(get_db)]


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

_bearer_scheme = HTTPBearer(auto_error=True)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
    db: DBSession,
) -> User:
    """The user behind the Bearer token; 401 when the token cannot be used."""
    from rxdesk.services.auth_service import TokenError, resolve_token_user

    try:
        user = await resolve_token_user(db, credentials.credentials)
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def get_current_provider(user: CurrentUser, db: DBSession) -> ProviderProfile:
    """Resolve the provider profile of the authenticated user.

    Raises 403 when the user is not a provider or has no profile yet.
    """
    from rxdesk.services.availabilityService import get_provider_for_user

    if not user.role_provider:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Provider access required.",
        )
    provider = await get_provider_for_user(db, user.id)
    if provider is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No provider profile found for this account.",
        )
    return provider


async def require_admin(user: CurrentUser) -> User:
    if not user.role_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required.",
        )
    return user


CurrentProvider = Annotated[ProviderProfile, Depends(get_current_provider)]
AdminUser = Annotated[User, Depends(require_admin)]
