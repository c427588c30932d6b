import os

os.environ.setdefault("BS_JWT_SECRET", "test-secret-key-for-band-sheets-suite")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from bandsheets.database import close_database, get_db, init_database
from bandsheets.event_store.service import EventStoreService
from bandsheets.imports.processor import ImportProcessor
from bandsheets.main import app
from bandsheets.sheets.repository import SheetRepository
from bandsheets.sheets.service import SheetService
from bandsheets.users.repository import create_user_repository
from bandsheets.users.schemas import Principal


@pytest_asyncio.fixture
async def db(tmp_path):
    await init_database(str(tmp_path / "band_sheets_test.db"))
    yield get_db()
    await close_database()


@pytest.fixture
def users(db):
    return create_user_repository("sqlite", db)


@pytest_asyncio.fixture
async def client(db, users):
    # The lifespan does not run under ASGITransport
    app.state.user_repo = users
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def register_user(client):
    async def _register(username: str = "alice") -> dict[str, str]:
        response = await client.post(
            "/api/auth/register",
            json={
                "username": username,
                "email": f"{username}@example.com",
                "password": "secret123",
            },
        )
        assert response.status_code == 201, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _register


async def _make_principal(users, username: str) -> Principal:
    user = await users.create(
        {
            "id": f"user-{username}",
            "username": username,
            "email": f"{username}@example.com",
            "password_hash": "not-a-real-hash",
            "role": "user",
            "created_at": "2024-01-01T00:00:00+00:00",
        }
    )
    return Principal(id=user["id"], username=user["username"])


@pytest_asyncio.fixture
async def owner(users) -> Principal:
    return await _make_principal(users, "alice")


@pytest_asyncio.fixture
async def other_user(users) -> Principal:
    return await _make_principal(users, "bob")


@pytest.fixture
def sheet_service(db, users) -> SheetService:
    return SheetService(EventStoreService(db), SheetRepository(db), users)


@pytest.fixture
def processor(sheet_service) -> ImportProcessor:
    return ImportProcessor(sheet_service, default_public=False)
