# app/models/api/auth_response.py
from datetime import datetime

from pydantic import BaseModel


class UserResponse(BaseModel):
    id: int
    email: str
    name: str | None = None
    role: str
    created_at: datetime | None = None


class SignupResponse(BaseModel):
    success: bool = True
    user: UserResponse


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class MessageResponse(BaseModel):
    success: bool = True
    message: str
