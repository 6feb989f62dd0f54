"""
NoteKeeper Backend: Auth Request/Response Schemas
==================================================

Shapes for registration, login, profile and password change. Length and
format rules that produce a ValidationError (password length, email shape,
blank names) live in AuthService so they report through the common error
envelope.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    email: str = Field(max_length=320)
    password: str = Field(max_length=128)

    model_config = {"extra": "forbid"}


class LoginRequest(BaseModel):
    email: str = Field(max_length=320)
    password: str = Field(max_length=128)

    model_config = {"extra": "forbid"}


class ProfileUpdateRequest(BaseModel):
    """Blank or omitted names keep their current value."""
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)

    model_config = {"extra": "forbid"}


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(max_length=128)
    new_password: str = Field(max_length=128)

    model_config = {"extra": "forbid"}


class UserResponse(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """
    What:  Issued bearer token plus the identity it resolves to.
    Who:   Returned by register, login and change-password.
    """
    token: str = Field(description="Bearer token for the Authorization header")
    token_type: str = Field(default="bearer")
    expires_in: int = Field(description="Token lifetime in seconds")
    user: UserResponse


class ProfileResponse(BaseModel):
    user: UserResponse
