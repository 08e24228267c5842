"""
auth.py
-------
Account signup, login and password reset (public) and the current account
(bearer token).
"""

from fastapi import APIRouter, Depends, status

from app.auth.verify import current_user_id
from app.infrastructure.observability.logging import get_logger
from app.models.api.auth_request import (
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
)
from app.models.api.auth_response import (
    LoginResponse,
    MessageResponse,
    SignupResponse,
    UserResponse,
)
from app.services import user_service

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = get_logger(__name__)

RESET_REQUESTED_MESSAGE = (
    "If an account exists with that email, you will receive password reset instructions."
)


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(body: SignupRequest):
    user = await user_service.signup(body.email, body.password, body.name)
    return SignupResponse(user=UserResponse(**user.model_dump()))


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest):
    user, token = await user_service.login(body.email, body.password)
    return LoginResponse(access_token=token, user=UserResponse(**user.model_dump()))


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(body: ForgotPasswordRequest):
    await user_service.request_password_reset(body.email)
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(body: ResetPasswordRequest):
    await user_service.reset_password(body.token, body.new_password, body.new_password_confirm)
    return MessageResponse(
        message="Password successfully reset. You can now log in with your new password."
    )


@router.get("/me", response_model=UserResponse)
async def me(user_id: int = Depends(current_user_id)):
    user = await user_service.get_user(user_id)
    return UserResponse(**user.model_dump())
