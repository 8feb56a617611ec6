"""
Shared pytest fixtures and configuration for all tests.
"""

import os
import sys
from collections.abc import AsyncGenerator, Callable, Generator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest
import pytest_asyncio
import strawberry
from starlette.responses import Response

# Add src directory to path so imports work
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sickfits.auth.context import ANONYMOUS, AuthContext
from sickfits.auth.passwords import hash_password
from sickfits.config import settings
from sickfits.database.connection import (
    get_async_engine,
    get_async_session,
    init_database,
    reset_database,
)
from sickfits.dbmodels import Base, Items, Users
from sickfits.payments import Charge


@pytest_asyncio.fixture(scope="function")
async def db(tmp_path: Path) -> AsyncGenerator[str, None]:
    """Point the shared connection pool at a fresh SQLite database with all tables."""
    dsn = f"sqlite+aiosqlite:///{tmp_path / 'sickfits.db'}"

    reset_database()
    init_database(dsn, force_reinit=True)

    engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield dsn

    await engine.dispose()
    reset_database()


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch: pytest.MonkeyPatch) -> None:
    """Use the cheapest bcrypt cost so hashing does not dominate test time."""
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def mailer() -> AsyncMock:
    """A mailer that records messages instead of talking to SMTP."""
    mock = AsyncMock()
    mock.send_mail = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def payments() -> AsyncMock:
    """A payment gateway that accepts every charge."""
    mock = AsyncMock()
    mock.charge = AsyncMock(
        side_effect=lambda amount, currency, source: Charge(
            id="ch_test_123", amount=amount, currency=currency.lower(), status="succeeded"
        )
    )
    mock.refund = AsyncMock(return_value="re_test_123")
    return mock


@pytest.fixture
def make_info(mailer: AsyncMock, payments: AsyncMock) -> Callable[..., Any]:
    """Build a mock GraphQL info object for a caller."""

    def _make(user_id: UUID | None = None) -> Any:
        info = MagicMock(spec=strawberry.Info)
        info.context = {
            "request": MagicMock(cookies={}),
            "response": Response(),
            "auth": AuthContext(user_id=user_id, token="test-token") if user_id else ANONYMOUS,
            "mailer": mailer,
            "payments": payments,
        }
        return info

    return _make


@pytest.fixture
def create_user(db: str) -> Callable[..., Any]:
    """Insert a user row and return it."""

    async def _create(
        email: str = "wes@example.com",
        name: str = "Wes",
        password: str = "dogs",
        permissions: list[str] | None = None,
    ) -> Users:
        async with get_async_session() as session:
            user = Users(
                email=email,
                name=name,
                password=await hash_password(password),
                permissions=permissions if permissions is not None else ["USER"],
            )
            session.add(user)
            await session.flush()
            return user

    return _create


@pytest.fixture
def make_item(db: str) -> Callable[..., Any]:
    """Insert an item row owned by the given user and return it."""

    async def _create(owner: Users, title: str = "Shirt", price: int = 500) -> Items:
        async with get_async_session() as session:
            item = Items(
                user_id=owner.id,
                title=title,
                description=f"A very nice {title.lower()}",
                image="shirt.jpg",
                large_image="shirt-large.jpg",
                price=price,
            )
            session.add(item)
            await session.flush()
            return item

    return _create


# Test markers
def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "requires_db: mark test as requiring database connection")
