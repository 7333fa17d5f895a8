import os

# Settings are read at import time, so the test database must be configured first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["CREATE_TABLES_ON_STARTUP"] = "true"
os.environ["ENV"] = "test"

from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import app.models  # noqa: F401 - register tables
from app.core.db import async_session_maker
from app.core.security import create_access_token
from app.main import app as fastapi_app
from app.models.client import Client
from app.models.scheduling import BookedSlot
from app.models.user import User


def make_slot(day: date, start: str, end: str, label: str = "Session") -> BookedSlot:
    sh, sm = map(int, start.split(":"))
    eh, em = map(int, end.split(":"))
    return BookedSlot(date=day, start_time=time(sh, sm), end_time=time(eh, em), label=label)


@dataclass
class Practitioner:
    id: int
    client_ids: list[int] = field(default_factory=list)

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(self.id)}"}


async def seed_practitioner(
    session: AsyncSession, clients: list[tuple[str, Decimal | None]]
) -> Practitioner:
    user = User(email=f"{uuid4().hex}@example.com", full_name="Dr. Test")
    session.add(user)
    await session.flush()
    practitioner = Practitioner(id=user.id)
    for name, price in clients:
        client = Client(user_id=user.id, name=name, default_session_price=price)
        session.add(client)
        await session.flush()
        practitioner.client_ids.append(client.id)
    await session.commit()
    return practitioner


@pytest.fixture(scope="session")
def api_client() -> Iterator[TestClient]:
    with TestClient(fastapi_app) as client:
        yield client


@pytest.fixture
def practitioner(api_client: TestClient) -> Practitioner:
    """A fresh practitioner with two clients; tests stay isolated by user id."""

    async def _seed() -> Practitioner:
        async with async_session_maker() as session:
            return await seed_practitioner(
                session, [("Ana Souza", Decimal("150.00")), ("Bruno Lima", None)]
            )

    return api_client.portal.call(_seed)


@pytest_asyncio.fixture
async def db_session() -> AsyncIterator[AsyncSession]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        yield session
    await engine.dispose()
