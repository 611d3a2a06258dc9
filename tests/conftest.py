"""Shared fixtures: an in-memory SQLite database per test and an HTTP client."""
import os

# Must be set before runtime_config / db are imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from db import create_all, dispose_engine, get_db
from db.models import Connection


@pytest_asyncio.fixture
async def database():
    """Fresh schema for one test; the in-memory database goes away on dispose."""
    await create_all()
    yield
    await dispose_engine()


@pytest_asyncio.fixture
async def make_connection(database):
    """Insert a connection row and return its id."""

    async def _make(**fields) -> int:
        fields.setdefault("user_id", 1)
        fields.setdefault("full_name", "Jordan Lee")
        fields.setdefault("email_status", "Not Contacted")
        async with get_db() as session:
            connection = Connection(**fields)
            session.add(connection)
            await session.flush()
            return connection.id

    return _make


@pytest_asyncio.fixture
async def client(database):
    from app import create_app

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
