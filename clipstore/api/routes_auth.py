# routes/auth.py
import logging
import uuid

from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool

from clipstore.api.dependencies import access_token_ttl, get_user_repository
from clipstore.core.config import Settings, get_settings
from clipstore.core.exceptions import BadRequestError, UnauthenticatedError
from clipstore.core.security import create_access_token, hash_password, verify_password
from clipstore.database.repositories import UserRepository
from clipstore.database.schemas.user import LoginRequest, UserCreate, UserInDB, UserResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/signup", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
async def signup(payload: UserCreate, users: UserRepository = Depends(get_user_repository)):
    # 1. Check if user exists
    existing_user = await run_in_threadpool(users.get_by_email, payload.email)
    if existing_user:
        raise BadRequestError("User already exists")

    # 2. Hash password and insert user
    user = UserInDB(
        _id=str(uuid.uuid4()),
        email=payload.email,
        password=hash_password(payload.password),
    )
    await run_in_threadpool(users.create, user)
    logger.info(f"User created | user_id={user.id}")

    return UserResponse(id=user.id, email=user.email)


@router.post("/login")
async def login(
    payload: LoginRequest,
    users: UserRepository = Depends(get_user_repository),
    settings: Settings = Depends(get_settings),
):
    user = await run_in_threadpool(users.get_by_email, payload.email)

    # same message for unknown user and wrong password
    if not user or not verify_password(payload.password, user.password):
        raise UnauthenticatedError("Invalid email or password")

    token = create_access_token(user.id, settings.JWT_SECRET, access_token_ttl(settings))
    logger.info(f"Login successful | user_id={user.id}")
    return {
        "access_token": token,
        "token_type": "bearer",
        "user": {"id": user.id, "email": user.email},
    }
