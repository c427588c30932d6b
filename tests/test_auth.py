import pytest

from bandsheets.auth import create_access_token
from bandsheets.exceptions import ConflictError
from bandsheets.users.passwords import hash_password, verify_password
from bandsheets.users.repository import (
    InMemoryUserRepository,
    SqliteUserRepository,
    create_user_repository,
)


def _user(username: str, **overrides) -> dict:
    return {
        "id": f"id-{username}",
        "username": username,
        "email": f"{username}@example.com",
        "password_hash": "hash",
        "role": "user",
        "created_at": "2024-01-01T00:00:00+00:00",
        **overrides,
    }


class TestAuthRoutes:
    @pytest.mark.asyncio
    async def test_register_login_me(self, client):
        registered = await client.post(
            "/api/auth/register",
            json={"username": "carol", "email": "Carol@Example.com", "password": "secret123"},
        )
        assert registered.status_code == 201
        assert registered.json()["token_type"] == "bearer"

        login = await client.post(
            "/api/auth/login", json={"email": "carol@example.com", "password": "secret123"}
        )
        assert login.status_code == 200

        token = login.json()["access_token"]
        me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["username"] == "carol"
        assert me.json()["email"] == "carol@example.com"
        assert "password_hash" not in me.json()

    @pytest.mark.asyncio
    async def test_duplicate_registration_conflicts(self, client, register_user):
        await register_user("carol")

        response = await client.post(
            "/api/auth/register",
            json={"username": "carol", "email": "other@example.com", "password": "secret123"},
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, register_user):
        await register_user("carol")

        response = await client.post(
            "/api/auth/login", json={"email": "carol@example.com", "password": "wrong-pass"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_missing_and_invalid_tokens(self, client):
        missing = await client.get("/api/auth/me")
        invalid = await client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})

        assert missing.status_code == 401
        assert missing.headers["WWW-Authenticate"] == "Bearer"
        assert invalid.status_code == 401
        assert invalid.json()["message"] == "Invalid token"

    @pytest.mark.asyncio
    async def test_token_for_unknown_user(self, client):
        token = create_access_token("no-such-user", "ghost")

        response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_bad_token_is_anonymous_on_optional_routes(self, client):
        response = await client.get(
            "/api/setlists/", headers={"Authorization": "Bearer garbage"}
        )

        assert response.status_code == 200
        assert response.json() == []


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("secret123")

        assert hashed != "secret123"
        assert verify_password("secret123", hashed)
        assert not verify_password("wrong", hashed)

    def test_malformed_hash_does_not_verify(self):
        assert not verify_password("secret123", "not-a-bcrypt-hash")


class TestUserRepositories:
    @pytest.mark.asyncio
    async def test_in_memory_repository(self):
        repo = InMemoryUserRepository()

        created = await repo.create(_user("dave"))

        assert await repo.get_by_id(created["id"]) == created
        assert (await repo.get_by_email("dave@example.com"))["username"] == "dave"
        assert (await repo.get_by_username("dave"))["id"] == "id-dave"
        assert await repo.get_by_username("erin") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", ["memory", "sqlite"])
    async def test_duplicates_rejected(self, db, kind):
        repo = create_user_repository(kind, db)
        await repo.create(_user("dave"))

        with pytest.raises(ConflictError):
            await repo.create(_user("dave", id="id-other", email="dave2@example.com"))
        with pytest.raises(ConflictError):
            await repo.create(_user("frank", id="id-frank", email="dave@example.com"))

    def test_factory_selects_implementation(self, db):
        assert isinstance(create_user_repository("memory"), InMemoryUserRepository)
        assert isinstance(create_user_repository("sqlite", db), SqliteUserRepository)

    @pytest.mark.asyncio
    async def test_in_memory_store_serves_the_api(self, client):
        from bandsheets.main import app

        app.state.user_repo = InMemoryUserRepository()

        registered = await client.post(
            "/api/auth/register",
            json={"username": "gina", "email": "gina@example.com", "password": "secret123"},
        )
        token = registered.json()["access_token"]
        me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert me.status_code == 200
        assert me.json()["username"] == "gina"
