# app/models/api/auth_request.py
from pydantic import BaseModel, Field


class SignupRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=8, max_length=128)
    name: str | None = Field(None, max_length=100)


class LoginRequest(BaseModel):
    email: str
    password: str


class ForgotPasswordRequest(BaseModel):
    email: str = Field(..., max_length=254)


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., max_length=128)
    new_password: str = Field(..., max_length=128)
    new_password_confirm: str = Field(..., max_length=128)


class UpdateQuotaRequest(BaseModel):
    """Admin request body for PATCH /api/admin/users/{id}/quota."""

    monthly_limit: int = Field(..., ge=1, le=10000, description="Emails per day")
