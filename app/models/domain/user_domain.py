from datetime import datetime
from typing import Literal

from pydantic import BaseModel

UserRole = Literal["artist", "admin"]


class User(BaseModel):
    """Domain model for an account (artist or admin)."""

    id: int
    email: str
    name: str | None = None
    role: UserRole = "artist"
    active: bool = True
    created_at: datetime | None = None

    def is_admin(self) -> bool:
        return self.role == "admin"
