"""Pydantic schemas for the authentication API."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)


class SessionResponse(BaseModel):
    """An issued session. The token is returned only at login."""

    token: str
    user_id: uuid.UUID
    expires_at: datetime


class ExtendSessionResponse(BaseModel):
    expires_at: datetime


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)


class ResetPasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=8, max_length=128)


class SessionInfo(BaseModel):
    """An active session, without its token."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    expires_at: datetime


class SessionListResponse(BaseModel):
    items: list[SessionInfo]
    total: int
