"""
Pydantic models for user data.

Defines schemas for registering, authenticating and reading users.
Password hashes never leave the service layer; ``UserRead`` is the
full profile returned to the user themselves, ``UserSummary`` the
public card embedded in services and proposals.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UserBase(BaseModel):
    name: str = Field(..., example="Maria Silva")
    email: str = Field(..., example="maria@example.com")
    city: Optional[str] = Field(None, example="São Paulo")
    state: Optional[str] = Field(None, example="SP")


class UserCreate(UserBase):
    """Schema for registering a user.

    The e-mail format and password strength (at least eight characters
    with letters and digits) are checked by ``UserService.register`` so
    that failures carry a readable message.
    """

    password: str = Field(..., example="segredo123")


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, example="maria@example.com")
    password: str = Field(..., min_length=1, example="segredo123")


class UserRead(UserBase):
    """Schema for reading a user from the API."""

    id: int
    avatar_url: Optional[str] = None
    balance: float = 0.0
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class UserSummary(BaseModel):
    id: int
    name: str
    avatar_url: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class AuthResponse(BaseModel):
    user: UserRead
    token: str


class MeResponse(BaseModel):
    user: UserRead
