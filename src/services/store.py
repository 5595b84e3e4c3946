"""Translate unexpected store failures into ``InternalError``."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError

from src.domain.exceptions import InternalError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def store_errors(operation: str) -> AsyncIterator[None]:
    """Log and wrap ``SQLAlchemyError`` raised inside *operation*.

    Domain errors pass through untouched.  Nothing is retried: the
    enclosing unit of work is rolled back by the session owner.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Store failure during %s", operation)
        raise InternalError(operation, f"Store failure during {operation}") from exc
