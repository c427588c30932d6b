from datetime import UTC, datetime
from uuid import uuid4

import structlog

from bandsheets.exceptions import NotFoundError, UnauthorizedError
from bandsheets.users.passwords import hash_password, verify_password
from bandsheets.users.repository import UserRepository
from bandsheets.users.schemas import LoginRequest, RegisterRequest, UserResponse

logger = structlog.get_logger()


class UserService:
    def __init__(self, repo: UserRepository) -> None:
        self._repo = repo

    async def register(self, data: RegisterRequest) -> UserResponse:
        user = {
            "id": str(uuid4()),
            "username": data.username,
            "email": data.email.lower(),
            "password_hash": hash_password(data.password),
            "role": "user",
            "created_at": datetime.now(UTC).isoformat(),
        }
        created = await self._repo.create(user)
        logger.info("user_registered", user_id=created["id"], username=created["username"])
        return self._to_response(created)

    async def authenticate(self, data: LoginRequest) -> UserResponse:
        user = await self._repo.get_by_email(data.email.lower())
        if user is None or not verify_password(data.password, user["password_hash"]):
            logger.info("login_rejected", email=data.email)
            raise UnauthorizedError("Invalid credentials")
        return self._to_response(user)

    async def get_by_id(self, user_id: str) -> UserResponse:
        user = await self._repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return self._to_response(user)

    async def get_by_username(self, username: str) -> UserResponse:
        user = await self._repo.get_by_username(username)
        if user is None:
            raise NotFoundError("User", username)
        return self._to_response(user)

    @staticmethod
    def _to_response(user: dict) -> UserResponse:
        return UserResponse(
            id=user["id"],
            username=user["username"],
            email=user["email"],
            role=user["role"],
            created_at=user["created_at"],
        )
