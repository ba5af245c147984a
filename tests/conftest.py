import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import pipeyard.models  # noqa: F401 register tables
from pipeyard.core.config import Settings
from pipeyard.models.base import Base
from pipeyard.services.notifications import NotificationService

from factories import RecordingSender


@pytest.fixture
def settings():
    return Settings(_env_file=None, notification_channels=["test"])


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def notifier(settings, sender):
    return NotificationService(settings, registry={"test": sender})


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    factory = async_sessionmaker(bind=engine, expire_on_commit=False)
    async with factory() as session:
        yield session
