import json
import os
from typing import Dict, List, Optional
from urllib.parse import unquote

# Settings are read at import time, so the test environment goes in first
os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_certificates.db"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SHEETDB_API_URL"] = "https://sheetdb.test/api/v1/certificates"
os.environ["CERTIFICATE_PORTAL_URL"] = "https://portal.test/certificate-portal"
os.environ["DEFAULT_EVENT_NAME"] = "mun-2025"
os.environ["DISCORD_ERRORS_WEBHOOK_URL"] = ""
os.environ["DISCORD_UPDATES_WEBHOOK_URL"] = ""

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as AsyncSessionSQLModel

import app.models  # noqa: F401
from app.core.config import settings
from app.core.security import create_access_token, get_password_hash, ROLE_SCOPES
from app.core.services import Services
from app.db.database import get_db, get_session_factory
from app.models.event import Event
from app.models.user import User
from app.schemas.enums import AccountStatus, UserRole
from app.utils.cache import SyncCache
from app.utils.discord import NullNotifier
from app.utils.sheetdb import SheetDBClient


class FakeSheetStore:
    """
    In-memory stand-in for the SheetDB HTTP API, served through
    httpx.MockTransport. ``rate_limited`` makes the next N calls answer 429.
    """

    def __init__(self, base_url: str, rows: Optional[List[Dict[str, str]]] = None):
        self.base_path = httpx.URL(base_url).path.rstrip("/")
        self.rows: List[Dict[str, str]] = [dict(row) for row in rows or []]
        self.requests: List[httpx.Request] = []
        self.rate_limited = 0
        self.fail_patches = False

    def add(self, **cells: str) -> Dict[str, str]:
        row = {
            "Cert_Type": "",
            "Unique_ID": "",
            "Participant_Name": "",
            "Email": "",
            "institution": "",
            "Verification_URL": "",
            "Award_Type": "",
            "Committee": "",
            "Country": "",
            "Date_Issued": "",
            "Verified_Status": "",
            "Event_Name": "",
        }
        row.update(cells)
        self.rows.append(row)
        return row

    @property
    def processed_count(self) -> int:
        return sum(1 for row in self.rows if row["Unique_ID"].strip())

    def find(self, column: str, value: str) -> List[Dict[str, str]]:
        return [row for row in self.rows if row.get(column) == value]

    @property
    def patches(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "PATCH"]

    def _search(self, request: httpx.Request):
        column, value = request.url.path[len(self.base_path):].strip("/").split("/", 1)
        return unquote(column), unquote(value)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.rate_limited:
            self.rate_limited -= 1
            return httpx.Response(429, json={"error": "Too many requests"})

        if request.method == "GET":
            return httpx.Response(200, json=self.rows)

        if request.method == "POST":
            data = json.loads(request.content)["data"]
            for row in data if isinstance(data, list) else [data]:
                self.add(**row)
            return httpx.Response(201, json={"created": len(data) if isinstance(data, list) else 1})

        if request.method == "PATCH":
            if self.fail_patches:
                return httpx.Response(500, json={"error": "Sheet unavailable"})
            column, value = self._search(request)
            matches = self.find(column, value)
            for row in matches:
                row.update(json.loads(request.content)["data"])
            return httpx.Response(200, json={"updated": len(matches)})

        if request.method == "DELETE":
            column, value = self._search(request)
            matches = self.find(column, value)
            self.rows = [row for row in self.rows if row not in matches]
            return httpx.Response(200, json={"deleted": len(matches)})

        return httpx.Response(405)


@pytest_asyncio.fixture(scope="function")
async def async_test_engine(tmp_path):
    """File backed SQLite so concurrent sessions see the same data."""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False, future=True)
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(async_test_engine):
    return sessionmaker(
        bind=async_test_engine,
        class_=AsyncSessionSQLModel,
        expire_on_commit=False,
        autoflush=False
    )


@pytest_asyncio.fixture(scope="function")
async def test_db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
def sheet_store():
    return FakeSheetStore(settings.SHEETDB_API_URL)


@pytest_asyncio.fixture(scope="function")
async def sheet_client(sheet_store):
    client = SheetDBClient(
        settings.SHEETDB_API_URL,
        rate_limit_delay=0,
        max_retries=3,
        batch_size=5,
        batch_pause=0,
        retry_backoff=0,
        transport=httpx.MockTransport(sheet_store.handler),
    )
    yield client
    await client.close()


@pytest.fixture(scope="function")
def sync_cache():
    return SyncCache(default_ttl=30, batch_delay=5)


@pytest.fixture(scope="function")
def notifier():
    return NullNotifier()


@pytest_asyncio.fixture(scope="function")
async def services(sheet_client, sync_cache, notifier):
    services = Services(sheet=sheet_client, cache=sync_cache, notifier=notifier)
    yield services
    # Drain debounced sheet writes while the client is still open
    await sync_cache.flush_all()


async def _make_user(session, email: str, role: UserRole, account_status=AccountStatus.APPROVED) -> User:
    user = User(
        email=email,
        full_name=email.split("@")[0].title(),
        role=role,
        hashed_password=get_password_hash("password123"),
        account_status=account_status,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def admin_user(test_db):
    return await _make_user(test_db, "admin@test.com", UserRole.ADMIN)


@pytest_asyncio.fixture(scope="function")
async def mod_user(test_db):
    return await _make_user(test_db, "mod@test.com", UserRole.MOD)


@pytest_asyncio.fixture(scope="function")
async def pending_user(test_db):
    return await _make_user(test_db, "pending@test.com", UserRole.ADMIN, AccountStatus.PENDING_APPROVAL)


def auth_headers(user: User) -> Dict[str, str]:
    token, _ = create_access_token(str(user.id), scopes=ROLE_SCOPES[user.role])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture(scope="function")
def mod_headers(mod_user):
    return auth_headers(mod_user)


@pytest_asyncio.fixture(scope="function")
async def default_event(test_db, admin_user):
    event = Event(
        event_code=settings.DEFAULT_EVENT_NAME,
        event_name="Model UN 2025",
        year=2025,
        month=8,
        session=1,
        created_by=admin_user.id,
    )
    test_db.add(event)
    await test_db.commit()
    await test_db.refresh(event)
    return event


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, services):
    from app.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.state.services = services

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
