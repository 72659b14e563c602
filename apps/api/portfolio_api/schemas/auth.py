"""Authentication schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class AuthPrincipal(BaseModel):
    """Resolved identity attached to an admitted request."""

    user_id: int
    method: Literal["bearer", "shared_secret"]


class TokenClaims(BaseModel):
    """Verified bearer token claims normalized for the gate."""

    subject: str | None = None


class LoginRequest(BaseModel):
    secret: str = Field(min_length=1)


class UserSummary(BaseModel):
    id: int
    email: str
    name: str | None = None


class LoginResponse(BaseModel):
    message: str
    user: UserSummary
    token: str


class UserProfile(BaseModel):
    id: int
    email: str
    name: str | None = None
    created_at: datetime
