from datetime import UTC, datetime, timedelta

import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from bandsheets.config import settings
from bandsheets.exceptions import UnauthorizedError
from bandsheets.users.repository import UserRepository
from bandsheets.users.schemas import Principal

logger = structlog.get_logger()

_bearer = HTTPBearer(auto_error=False)


def get_user_repository(request: Request) -> UserRepository:
    return request.app.state.user_repo


def create_access_token(user_id: str, username: str) -> str:
    expire = datetime.now(UTC) + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {"sub": user_id, "username": username, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def _decode(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired") from None
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token") from None


async def verify_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),  # noqa: B008
) -> dict:
    if credentials is None:
        raise UnauthorizedError()
    return _decode(credentials.credentials)


async def get_current_user(
    claims: dict = Depends(verify_token),  # noqa: B008
    repo: UserRepository = Depends(get_user_repository),  # noqa: B008
) -> Principal:
    user = await repo.get_by_id(claims.get("sub", ""))
    if user is None:
        raise UnauthorizedError()
    return Principal(id=user["id"], username=user["username"], role=user["role"])


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),  # noqa: B008
    repo: UserRepository = Depends(get_user_repository),  # noqa: B008
) -> Principal | None:
    """Resolve the caller when a valid token is present, otherwise treat as anonymous."""
    if credentials is None:
        return None
    try:
        claims = _decode(credentials.credentials)
    except UnauthorizedError as exc:
        logger.info("optional_auth_token_ignored", reason=exc.message)
        return None
    user = await repo.get_by_id(claims.get("sub", ""))
    if user is None:
        return None
    return Principal(id=user["id"], username=user["username"], role=user["role"])
