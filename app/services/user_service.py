"""
User accounts: signup, login and password reset.
Signup creates the user and its quota row atomically.
"""

import hashlib
import re
import secrets
from datetime import UTC, datetime, timedelta

from psycopg import errors as pg_errors

from app.auth.verify import create_access_token
from app.config import settings
from app.db.helpers import DatabaseError, with_db_retry
from app.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.user_domain import User
from app.models.domain.validation import is_valid_email, normalize_email
from app.repositories.user_repository import UserRepository
from app.security.passwords import MIN_PASSWORD_LENGTH, hash_password, verify_password
from app.services.email import OutboundEmail, get_email_provider

logger = get_logger(__name__)


async def signup(email: str, password: str, name: str | None = None) -> User:
    email = normalize_email(email or "")
    if not is_valid_email(email):
        raise ValidationError("Invalid email address")
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    if await UserRepository.find_by_email(email):
        raise ConflictError("An account with this email already exists")

    try:
        user = await UserRepository.create_with_quota(
            email=email,
            password_hash=hash_password(password),
            name=(name or "").strip() or None,
            daily_limit=settings.DEFAULT_DAILY_EMAIL_LIMIT,
            max_contacts=settings.DEFAULT_MAX_CONTACTS,
        )
    except DatabaseError as e:
        # Lost a race with a concurrent signup for the same address
        if isinstance(e.__cause__, pg_errors.UniqueViolation):
            raise ConflictError("An account with this email already exists") from e
        raise

    logger.info("User signed up", user_id=user.id)
    return user


async def login(email: str, password: str) -> tuple[User, str]:
    """Returns the user and a bearer token."""
    user = await UserRepository.find_by_email(normalize_email(email or ""))
    if user is None:
        raise UnauthorizedError("Invalid email or password")

    stored = await UserRepository.get_password_hash(user.id)
    if not verify_password(password or "", stored):
        logger.info("Login failed", user_id=user.id)
        raise UnauthorizedError("Invalid email or password")

    if not user.active:
        raise UnauthorizedError("Account is disabled")

    return user, create_access_token(user.id, user.role)


@with_db_retry(max_retries=3, base_delay=0.1)
async def get_user(user_id: int) -> User:
    user = await UserRepository.find_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


# =================================================================
# PASSWORD RESET
# =================================================================

RESET_TOKEN_BYTES = 32
RESET_TOKEN_PATTERN = re.compile(r"^[0-9a-f]{64}$")
INVALID_RESET_TOKEN = "Invalid or expired reset token. Please request a new password reset link."


def hash_reset_token(token: str) -> str:
    """Only the SHA-256 of a reset token is stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _reset_email_html(reset_link: str, expiry_minutes: int) -> str:
    return (
        "<h1>Reset your password</h1>"
        f"<p>We received a request to reset the password for your {settings.SENDER_NAME} account.</p>"
        f'<p><a href="{reset_link}">Choose a new password</a></p>'
        f"<p>This link expires in {expiry_minutes} minutes and can be used once.</p>"
        "<p>If you did not ask for this, ignore this email. Your password will not change.</p>"
    )


async def request_password_reset(email: str, now: datetime | None = None) -> None:
    """
    Email a single-use reset link if `email` belongs to an active account.

    Callers get the same outcome whether or not the account exists.
    """
    email = normalize_email(email or "")
    if not is_valid_email(email):
        raise ValidationError("Invalid email address")

    user = await UserRepository.find_by_email(email)
    if user is None or not user.active:
        logger.info("Password reset requested for unknown or inactive account")
        return

    token = secrets.token_hex(RESET_TOKEN_BYTES)
    expiry_minutes = settings.PASSWORD_RESET_TOKEN_EXPIRY_MINUTES
    expires_at = (now or datetime.now(UTC)) + timedelta(minutes=expiry_minutes)
    await UserRepository.set_password_reset_token(user.id, hash_reset_token(token), expires_at)

    result = await get_email_provider().send(
        OutboundEmail(
            to=user.email,
            subject=f"Reset your password - {settings.SENDER_NAME}",
            html=_reset_email_html(settings.password_reset_url(token), expiry_minutes),
            from_address=settings.default_from_address(),
            tags={"category": "password_reset"},
        )
    )
    if not result.success:
        # Same response either way; the user can ask again
        logger.error("Password reset email failed", user_id=user.id, error=result.error)
        return

    logger.info("Password reset email sent", user_id=user.id, message_id=result.message_id)


async def reset_password(token: str, new_password: str, new_password_confirm: str) -> None:
    token = (token or "").strip()
    if not RESET_TOKEN_PATTERN.match(token):
        raise ValidationError("Invalid reset token format")
    if new_password != new_password_confirm:
        raise ValidationError("Passwords do not match")
    if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    user_id = await UserRepository.consume_password_reset_token(
        hash_reset_token(token), hash_password(new_password)
    )
    if user_id is None:
        raise ValidationError(INVALID_RESET_TOKEN)

    logger.info("Password reset completed", user_id=user_id)
