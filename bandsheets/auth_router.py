from fastapi import APIRouter

from bandsheets.auth import create_access_token
from bandsheets.dependencies import CurrentUser, UserServiceDep
from bandsheets.users.schemas import LoginRequest, RegisterRequest, TokenResponse, UserResponse

router = APIRouter()


@router.post("/register", status_code=201, response_model=TokenResponse)
async def register(data: RegisterRequest, service: UserServiceDep) -> TokenResponse:
    user = await service.register(data)
    return TokenResponse(access_token=create_access_token(user.id, user.username))


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, service: UserServiceDep) -> TokenResponse:
    user = await service.authenticate(data)
    return TokenResponse(access_token=create_access_token(user.id, user.username))


@router.get("/me", response_model=UserResponse)
async def me(service: UserServiceDep, user: CurrentUser) -> UserResponse:
    return await service.get_by_id(user.id)
