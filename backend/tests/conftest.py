"""Shared fixtures: a throwaway SQLite database and an app client bound to it."""
import asyncio
from pathlib import Path
from typing import Any, Callable, Iterator

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from api.main import app
from api.routes import integrations as integration_routes
from config import settings
from models import Base, get_db


def _enable_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async def _create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
def engine(tmp_path: Path) -> Iterator[AsyncEngine]:
    # NullPool: every asyncio.run / request opens its own connection
    db_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tracker.db'}",
        poolclass=NullPool,
    )
    event.listen(db_engine.sync_engine, "connect", _enable_foreign_keys)
    asyncio.run(_create_schema(db_engine))
    yield db_engine
    asyncio.run(db_engine.dispose())


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
def add_rows(session_factory: async_sessionmaker[AsyncSession]) -> Callable[..., list[Any]]:
    """Persist ORM objects in order, one commit each, and return them."""

    def _add(*rows: Any) -> list[Any]:
        async def _persist() -> None:
            async with session_factory() as session:
                for row in rows:
                    session.add(row)
                    await session.commit()

        asyncio.run(_persist())
        return list(rows)

    return _add


@pytest.fixture
def http_calls() -> list[httpx.Request]:
    return []


@pytest.fixture
def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> Iterator[TestClient]:
    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def use_mock_transport(
    handler: Callable[[httpx.Request], httpx.Response],
    calls: list[httpx.Request],
) -> None:
    """Route the API's outbound HTTP through ``handler``, recording requests."""

    def _recording_handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return handler(request)

    app.dependency_overrides[integration_routes.get_http_transport] = (
        lambda: httpx.MockTransport(_recording_handler)
    )


@pytest.fixture
def mock_transport(http_calls: list[httpx.Request]) -> Callable[[Callable], None]:
    def _install(handler: Callable[[httpx.Request], httpx.Response]) -> None:
        use_mock_transport(handler, http_calls)

    return _install


@pytest.fixture
def auth_header() -> Callable[[int], dict[str, str]]:
    def _header(user_id: int) -> dict[str, str]:
        token = jwt.encode({"sub": str(user_id)}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
        return {"Authorization": f"Bearer {token}"}

    return _header
