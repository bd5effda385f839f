import os
import sys
import asyncio
from datetime import datetime, timezone

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# main.py refuses to import without explicit origins.
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:3000")
# Honour any externally provided DATABASE_URL (e.g. CI may set a file-backed DB)
# but fall back to an in-memory SQLite database so local runs remain isolated.
DEFAULT_DB_URL = os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

# Register every table on the declarative Base before the schema is created.
from courtbook import db, models  # noqa: F401
from courtbook.schemas import Gender, Level
from courtbook.services.ledger import Ledger

NOW = datetime(2024, 5, 1, 19, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def session_loop():
    """Single event loop for all sync fixtures that need to run async DB code."""

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield loop
    loop.close()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True, scope="session")
def ensure_database(session_loop):
    """Ensure the test database starts clean and honours DATABASE_URL."""

    mp = pytest.MonkeyPatch()
    desired_url = os.getenv("DATABASE_URL") or DEFAULT_DB_URL
    mp.setenv("DATABASE_URL", desired_url)

    if desired_url.startswith("sqlite") and ":memory:" not in desired_url:
        path = desired_url.split("///")[-1]
        if os.path.exists(path):
            os.remove(path)

    db.engine = None
    db.AsyncSessionLocal = None
    yield
    if db.engine is not None:
        session_loop.run_until_complete(db.engine.dispose())
        db.engine = None
    db.AsyncSessionLocal = None
    mp.undo()


async def _reset_schema(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(db.Base.metadata.drop_all)
        await conn.run_sync(db.Base.metadata.create_all)


@pytest.fixture(autouse=True)
def reset_schema(session_loop):
    """Start every test from empty tables."""

    engine = db.engine or db.get_engine()
    session_loop.run_until_complete(_reset_schema(engine))
    yield


# name, gender, level
ROSTER = [
    ("Anna", Gender.FEMALE, Level.ADVANCED),
    ("Bee", Gender.FEMALE, Level.INTERMEDIATE),
    ("Dom", Gender.MALE, Level.ADVANCED),
    ("Keng", Gender.MALE, Level.INTERMEDIATE),
    ("Pak", Gender.MALE, Level.BEGINNER),
    ("Mint", Gender.FEMALE, Level.PRO),
]


def make_ledger(present: bool = True) -> Ledger:
    """A ledger with the roster above and, optionally, an open session everyone attends."""

    counter = iter(range(1, 10_000))
    ledger = Ledger(id_factory=lambda: f"id{next(counter)}", clock=lambda: NOW)
    for name, gender, level in ROSTER:
        ledger.add_player(name, gender, level)
    if present:
        ledger.start_session()
        for player in ledger.players:
            ledger.toggle_presence(player.id)
    ledger.drain_changes()
    return ledger


@pytest.fixture
def ledger() -> Ledger:
    return make_ledger()
