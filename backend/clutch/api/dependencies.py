"""
FastAPI dependency injection for database sessions and the calling user.
"""

from typing import AsyncGenerator, Optional

from fastapi import Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from clutch.database import get_session_factory
from clutch.services import Actor


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides an async database session.

    Usage:
        @router.get("/topics")
        async def list_topics(db: AsyncSession = Depends(get_db)):
            return await topic_service.list_topics(db)

    Services commit or roll back their own units of work; the session is
    closed after the request.
    """
    session = get_session_factory()()
    try:
        yield session
    finally:
        await session.close()


async def get_actor(
    x_user_id: Optional[int] = Header(default=None),
    x_user_role: str = Header(default="user"),
) -> Actor:
    """
    The calling user, as asserted by the authentication layer in front of
    this service.
    """
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="X-User-Id header required")
    return Actor(user_id=x_user_id, role=x_user_role)
