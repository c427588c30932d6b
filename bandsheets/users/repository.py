from abc import ABC, abstractmethod

import aiosqlite
import structlog

from bandsheets.database import get_write_lock
from bandsheets.exceptions import ConflictError

logger = structlog.get_logger()


class UserRepository(ABC):
    @abstractmethod
    async def get_by_id(self, user_id: str) -> dict | None: ...

    @abstractmethod
    async def get_by_email(self, email: str) -> dict | None: ...

    @abstractmethod
    async def get_by_username(self, username: str) -> dict | None: ...

    @abstractmethod
    async def create(self, user: dict) -> dict: ...


class SqliteUserRepository(UserRepository):
    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def get_by_id(self, user_id: str) -> dict | None:
        return await self._fetch_one("SELECT * FROM users WHERE id = ?", user_id)

    async def get_by_email(self, email: str) -> dict | None:
        return await self._fetch_one("SELECT * FROM users WHERE email = ?", email)

    async def get_by_username(self, username: str) -> dict | None:
        return await self._fetch_one("SELECT * FROM users WHERE username = ?", username)

    async def create(self, user: dict) -> dict:
        async with get_write_lock():
            try:
                await self._db.execute(
                    """
                    INSERT INTO users (id, username, email, password_hash, role, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user["id"],
                        user["username"],
                        user["email"],
                        user["password_hash"],
                        user["role"],
                        user["created_at"],
                    ),
                )
                await self._db.commit()
            except aiosqlite.IntegrityError as exc:
                await self._db.rollback()
                raise ConflictError("User already exists") from exc
        return dict(user)

    async def _fetch_one(self, query: str, value: str) -> dict | None:
        cursor = await self._db.execute(query, (value,))
        row = await cursor.fetchone()
        if row is None:
            return None
        return dict(row)


class InMemoryUserRepository(UserRepository):
    """Process-local user store for running without a persistent database."""

    def __init__(self) -> None:
        self._users: dict[str, dict] = {}

    async def get_by_id(self, user_id: str) -> dict | None:
        user = self._users.get(user_id)
        return dict(user) if user else None

    async def get_by_email(self, email: str) -> dict | None:
        return self._find("email", email)

    async def get_by_username(self, username: str) -> dict | None:
        return self._find("username", username)

    async def create(self, user: dict) -> dict:
        if self._find("email", user["email"]) or self._find("username", user["username"]):
            raise ConflictError("User already exists")
        self._users[user["id"]] = dict(user)
        return dict(user)

    def _find(self, field: str, value: str) -> dict | None:
        for user in self._users.values():
            if user[field] == value:
                return dict(user)
        return None


def create_user_repository(kind: str, db: aiosqlite.Connection | None = None) -> UserRepository:
    if kind == "memory":
        logger.info("user_store_selected", kind=kind)
        return InMemoryUserRepository()
    if db is None:
        raise RuntimeError("SQLite user store requires an initialized database connection")
    logger.info("user_store_selected", kind=kind)
    return SqliteUserRepository(db)
