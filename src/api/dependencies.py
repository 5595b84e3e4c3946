"""FastAPI dependency injection helpers."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain.enums import UserRole
from src.domain.exceptions import InvalidArgumentError
from src.infrastructure.database import async_session_factory


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@dataclass(frozen=True)
class Caller:
    """Identity attached to the request by the authenticating gateway."""

    user_id: str
    role: UserRole


async def get_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Caller:
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Missing caller identity")
    try:
        role = UserRole(x_user_role.upper())
    except ValueError:
        raise InvalidArgumentError(f"Unknown role {x_user_role!r}") from None
    return Caller(user_id=x_user_id, role=role)


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int


async def get_page_params(
    page: int = Query(1),
    limit: int = Query(settings.default_page_size, le=settings.max_page_size),
) -> PageParams:
    return PageParams(page=page, limit=limit)
