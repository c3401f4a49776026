'''
Pytest configuration for the FastAPI application.

This file sets up fixtures for:
1. Forcing the application into TEST_MODE before any code is imported.
2. A fresh SQLite database file per test, for both the app and the services.
3. Providing a FastAPI TestClient for endpoint testing.
4. Providing stores, services and swap engines bound to a test db session.
5. Seeding three users (Alice, Bob, Carol) and their slots.
'''

import os

# --- Must happen before the app reads its settings ---
os.environ["TEST_MODE"] = "True"
os.environ.setdefault("DATABASE_URL_PROD", "sqlite+aiosqlite:///./slot_swapper_unused.db")
os.environ.setdefault("DATABASE_URL_TEST", "sqlite+aiosqlite:///./slot_swapper_test.db")
os.environ.setdefault("SECRET_KEY", "slot-swapper-test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from typing import AsyncGenerator

# --- FastAPI & Testing Imports ---
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine

# --- Constant Imports ----
from tests.constants import (
    TEST_ALICE_ID, TEST_BOB_ID, TEST_CAROL_ID,
    TEST_ALICE_EMAIL, TEST_BOB_EMAIL, TEST_CAROL_EMAIL,
    TEST_ALICE_SLOT_ID, TEST_ALICE_BUSY_SLOT_ID, TEST_BOB_SLOT_ID, TEST_CAROL_SLOT_ID,
)
from tests.database import factories

# --- Application Imports ---
from slot_swapper_backend.main import app
from slot_swapper_backend.common.config import settings
from slot_swapper_backend.database.engine import create_all_tables
from slot_swapper_backend.database import models as db_models
from slot_swapper_backend.database.db_enums import SlotStatus
from slot_swapper_backend.database.slot_store import SlotStore
from slot_swapper_backend.database.swap_store import SwapRecordStore
from slot_swapper_backend.services.swap_engine import SwapTransactionEngine
from slot_swapper_backend.services.slot_service import SlotService
from slot_swapper_backend.services.swap_service import SwapRequestService
from slot_swapper_backend.services.user_service import UserService


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio' (aiosqlite does not run on trio).
    2. Promotes the scope to 'session' (solves 'ScopeMismatch').
    """
    return "asyncio"


@pytest.fixture(scope="function")
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'slot_swapper.db'}"


# --- 1. API Fixture ---

@pytest.fixture(scope="function")
def client(db_url: str, monkeypatch) -> TestClient:
    """
    1. Points the app at a brand new SQLite file.
    2. Runs the app's lifespan, which creates the *real* database engine.
    3. Creates the tables inside the app's own event loop.
    """
    monkeypatch.setattr(settings, "TEST_MODE", True)
    monkeypatch.setattr(settings, "DATABASE_URL_TEST", db_url)

    with TestClient(app) as test_client:
        test_client.portal.call(create_all_tables)
        yield test_client

    app.dependency_overrides.clear()


# --- 2. Function-Scoped Session Fixtures (For Service Tests) ---

@pytest.fixture(scope="function")
async def db_engine(db_url: str) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(db_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(db_models.Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """The session every service fixture below is bound to."""
    session = session_factory()
    try:
        yield session
    finally:
        await session.rollback()
        await session.close()


@pytest.fixture(scope="function")
async def other_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A second, independent session, used to play a concurrent request."""
    session = session_factory()
    try:
        yield session
    finally:
        await session.rollback()
        await session.close()


# --- 3. STORE & SERVICE FIXTURES ---

@pytest.fixture(scope="function")
def slot_store(db_session: AsyncSession) -> SlotStore:
    return SlotStore(db=db_session)

@pytest.fixture(scope="function")
def swap_store(db_session: AsyncSession) -> SwapRecordStore:
    return SwapRecordStore(db=db_session)

@pytest.fixture(scope="function", params=[True, False], ids=["atomic", "compensating"])
def swap_engine(request, slot_store: SlotStore, swap_store: SwapRecordStore) -> SwapTransactionEngine:
    """
    The engine in both commit modes: one database transaction per operation,
    or one commit per write with compensation on failure.
    """
    engine = SwapTransactionEngine(slots=slot_store, swaps=swap_store)
    engine.atomic_commit = request.param
    return engine

@pytest.fixture(scope="function")
def other_swap_engine(other_session: AsyncSession, swap_engine: SwapTransactionEngine) -> SwapTransactionEngine:
    """Engine on `other_session`, in the same commit mode as `swap_engine`."""
    engine = SwapTransactionEngine(
        slots=SlotStore(db=other_session),
        swaps=SwapRecordStore(db=other_session)
    )
    engine.atomic_commit = swap_engine.atomic_commit
    return engine

@pytest.fixture(scope="function")
def slot_service(slot_store: SlotStore) -> SlotService:
    return SlotService(slots=slot_store)

@pytest.fixture(scope="function")
def swap_request_service(swap_engine: SwapTransactionEngine, swap_store: SwapRecordStore) -> SwapRequestService:
    return SwapRequestService(engine=swap_engine, swaps=swap_store)

@pytest.fixture(scope="function")
def user_service(db_session: AsyncSession) -> UserService:
    return UserService(db=db_session)


# --- 4. DATA FIXTURES ---

@pytest.fixture(scope="function")
async def seeded(db_session: AsyncSession) -> dict[str, db_models.Users]:
    """
    Seeds the three test users, each with one SWAPPABLE slot, plus a BUSY
    slot for Alice. Everything is committed so other sessions can see it.
    """
    factories.test_db_session = db_session
    try:
        users = {
            "alice": factories.UserFactory.create(id=TEST_ALICE_ID, name="Alice", email=TEST_ALICE_EMAIL),
            "bob": factories.UserFactory.create(id=TEST_BOB_ID, name="Bob", email=TEST_BOB_EMAIL),
            "carol": factories.UserFactory.create(id=TEST_CAROL_ID, name="Carol", email=TEST_CAROL_EMAIL),
        }
        await db_session.flush()

        factories.SlotFactory.create(id=TEST_ALICE_SLOT_ID, owner_id=TEST_ALICE_ID, title="Alice shift")
        factories.SlotFactory.create(
            id=TEST_ALICE_BUSY_SLOT_ID, owner_id=TEST_ALICE_ID, title="Alice meeting",
            status=SlotStatus.BUSY.value, start_time=factories._in_days(2)
        )
        factories.SlotFactory.create(id=TEST_BOB_SLOT_ID, owner_id=TEST_BOB_ID, title="Bob shift", start_time=factories._in_days(3))
        factories.SlotFactory.create(id=TEST_CAROL_SLOT_ID, owner_id=TEST_CAROL_ID, title="Carol shift", start_time=factories._in_days(4))
        await db_session.commit()
    finally:
        factories.test_db_session = None
    return users

@pytest.fixture(scope="function")
def alice(seeded) -> db_models.Users:
    return seeded["alice"]

@pytest.fixture(scope="function")
def bob(seeded) -> db_models.Users:
    return seeded["bob"]

@pytest.fixture(scope="function")
def carol(seeded) -> db_models.Users:
    return seeded["carol"]
