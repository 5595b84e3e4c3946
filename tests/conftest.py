"""
Shared test fixtures.

Uses a throwaway SQLite database (via aiosqlite) built from the production
models, so tests run without Docker / PostgreSQL / Redis.  Foreign keys are
enforced as on PostgreSQL.  Each test gets a fresh file under pytest's
``tmp_path``; independent sessions therefore hold independent connections,
which the stale-read concurrency tests rely on.
"""

import os

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from src.domain.enums import UserRole
from src.infrastructure.database import Base
from src.infrastructure.models import UserModel
from src.services.rides import RideService

DEPARTURE = datetime(2026, 6, 1, 8, 0, tzinfo=timezone.utc)


# ── Database ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine(tmp_path):
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'rides.db'}",
        poolclass=NullPool,
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def enforce_foreign_keys(dbapi_connection, connection_record):
        # SQLite leaves foreign keys unchecked unless asked per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ── Data ──────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def users(session_factory) -> dict[str, str]:
    """Two drivers and two riders; returns their ids keyed by handle."""
    people = {
        "driver_a": UserModel(name="Driver A", email="a@drivers.test", role=UserRole.DRIVER),
        "driver_b": UserModel(name="Driver B", email="b@drivers.test", role=UserRole.DRIVER),
        "rider_a": UserModel(name="Rider A", email="a@riders.test", role=UserRole.USER),
        "rider_b": UserModel(name="Rider B", email="b@riders.test", role=UserRole.USER),
    }
    async with session_factory() as session:
        session.add_all(people.values())
        await session.commit()
    return {handle: user.id for handle, user in people.items()}


@pytest.fixture
def make_ride(session_factory, users):
    """Factory creating and committing a ride owned by ``driver_a`` by default."""

    async def _make(
        capacity: int = 3,
        departure: str = "Paris",
        destination: str = "Lyon",
        stops=None,
        driver: str = "driver_a",
        vehicle_id: str = "veh-1",
        hours_ahead: int = 0,
        **extra,
    ):
        departure_time = DEPARTURE + timedelta(hours=hours_ahead)
        async with session_factory() as session:
            ride = await RideService(session).create_ride(
                driver_id=users[driver],
                vehicle_id=vehicle_id,
                departure=departure,
                destination=destination,
                departure_time=departure_time,
                capacity=capacity,
                stops=stops,
                **extra,
            )
            await session.commit()
        return ride

    return _make


# ── HTTP ──────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    from src.api.app import create_app
    from src.api.dependencies import get_db

    app = create_app()

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _test_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac