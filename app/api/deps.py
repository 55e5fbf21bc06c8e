from typing import Annotated, Optional
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import get_db, async_session_factory
from app.core.security import verify_access_token


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> str:
    """
    Dependency returning the actor identity from a bearer JWT.

    There is no user lookup; the subject is stored as-is on audited writes.
    """
    actor_id = verify_access_token(credentials.credentials)
    if actor_id is None:
        logger.warning("Token verification failed - invalid or expired token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor_id


async def get_optional_actor(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(optional_security)],
) -> Optional[str]:
    """Actor identity when a valid bearer token is sent, else None."""
    if credentials is None:
        return None
    return verify_access_token(credentials.credentials)


def get_session_factory() -> async_sessionmaker:
    """Session factory for endpoints that run one transaction per item."""
    return async_session_factory


# Type aliases for cleaner dependency injection
DB = Annotated[AsyncSession, Depends(get_db)]
CurrentActor = Annotated[str, Depends(get_current_actor)]
OptionalActor = Annotated[Optional[str], Depends(get_optional_actor)]
SessionFactory = Annotated[async_sessionmaker, Depends(get_session_factory)]
