"""Shared fixtures: file-backed SQLite per test, fake gateway, recording notifier."""

import os

os.environ["DATABASE_URL_OVERRIDE"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["PAYMENT_GATEWAY"] = "manual"
os.environ["NOTIFICATIONS_INLINE"] = "true"

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402

import clubswap.models  # noqa: E402,F401
from clubswap.database import Base  # noqa: E402
from clubswap.services.availability_service import AvailabilityService  # noqa: E402
from clubswap.services.booking_service import BookingService  # noqa: E402
from clubswap.services.rating_service import RatingService  # noqa: E402
from clubswap.services.review_service import ReviewService  # noqa: E402
from tests.fakes import FakeGateway, RecordingNotifier  # noqa: E402


@pytest.fixture
async def session_maker(tmp_path):
    """Session factory bound to a fresh database file.

    A file (not :memory:) so that two sessions really use two connections.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'clubswap.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def booking_svc(gateway, notifier):
    return BookingService(gateway=gateway, notifier=notifier, availability=AvailabilityService())


@pytest.fixture
def review_svc(notifier):
    return ReviewService(
        ratings=RatingService(),
        notifier=notifier,
        publish_window_days=14,
        response_lock_hours=48,
    )
