import asyncio
import inspect
import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Configure the environment before anything imports expense_tracker.core.config
_test_tmp_dir = tempfile.mkdtemp(prefix="expense_tracker_test_")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_test_tmp_dir}/app.db")
os.environ.setdefault("JWT_ACCESS_SECRET", "test-access-secret-do-not-use-in-production")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-do-not-use-in-production")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("REFRESH_HASH_TIME_COST", "1")
os.environ.setdefault("REFRESH_HASH_MEMORY_COST", "1024")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from expense_tracker.auth.jwt import TokenIssuer  # noqa: E402
from expense_tracker.core.database import enable_sqlite_foreign_keys, get_db, init_db  # noqa: E402
from expense_tracker.main import app  # noqa: E402
from expense_tracker.models.account import Role  # noqa: E402
from expense_tracker.repositories.accounts import AccountStore  # noqa: E402

API = "/api/v1"


def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
            if name in pyfuncitem.funcargs
        }
        asyncio.run(pyfuncitem.obj(**call_kwargs))
        return True
    return None


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test as async")


class FakeClock:
    """Controllable clock for TokenIssuer."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def issuer(clock):
    return TokenIssuer(
        access_secret="access-secret-for-tests",
        refresh_secret="refresh-secret-for-tests",
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=7),
        clock=clock,
    )


@pytest.fixture
def session_maker(tmp_path):
    """Fresh SQLite database per test. NullPool: no connection outlives its event loop."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    enable_sqlite_foreign_keys(engine)
    asyncio.run(init_db(engine))
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def client(session_maker, issuer):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.token_issuer = issuer
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        app.state.token_issuer = None
        app.state.oauth_client = None


# =============================================================================
# Helpers
# =============================================================================

def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def signup(client, email: str, password: str = "p1", first_name: str = "Test", last_name: str = "User") -> dict:
    response = client.post(f"{API}/auth/signup", json={
        "email": email,
        "password": password,
        "firstName": first_name,
        "lastName": last_name,
    })
    assert response.status_code == 201, response.text
    return response.json()["data"]


def login(client, email: str, password: str = "p1") -> dict:
    response = client.post(f"{API}/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["data"]


def set_role(session_maker, account_id: int, role: Role) -> None:
    async def _update():
        async with session_maker() as session:
            await AccountStore(session).update(account_id, role=role)

    asyncio.run(_update())


def assign(client, owner_token: str, employee_id: int):
    return client.post(f"{API}/users/employees/{employee_id}", headers=auth_header(owner_token))


@pytest.fixture
def make_account(client, session_maker):
    """Sign up an account with the given role and return its login payload."""

    def _make(email: str, role: Role = Role.USER, password: str = "p1") -> dict:
        account = signup(client, email, password)
        if role is not Role.USER:
            set_role(session_maker, account["id"], role)
        return login(client, email, password)

    return _make
