from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from musicschool.core.config import SETTINGS
from musicschool.db.engine import async_session_factory, session_scope
from musicschool.models.principal import Principal
from musicschool.repos.store import ContractStore, in_memory_store, pg_store
from musicschool.services import token_service

logger = logging.getLogger(__name__)

# Tokens come from the school's auth service
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")

# Used whenever DATABASE_URL is unset; tests swap in a fresh one per test
memory_store: ContractStore = in_memory_store(
    lock_timeout=SETTINGS.contract_lock_timeout_seconds
)


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer token and return the calling Principal."""
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
    )
    logger.debug(
        "Token validated for user=%s roles=%s",
        principal.user_id,
        principal.roles,
    )
    return principal


async def get_store() -> AsyncGenerator[ContractStore, None]:
    """Request-scoped ContractStore.

    With a database every repo shares one session, so the request is one
    transaction and advisory locks last until its commit or rollback.
    """
    if async_session_factory is None:
        yield memory_store
        return

    async with session_scope() as session:
        yield pg_store(session, lock_timeout=SETTINGS.contract_lock_timeout_seconds)


CurrentUser = Annotated[Principal, Depends(require_user)]
Store = Annotated[ContractStore, Depends(get_store)]
