from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class OAuthCallbackRequest(BaseModel):
    provider: str = Field(..., min_length=1, max_length=64)
    code: str = Field(..., min_length=1)
    redirect_uri: str = Field(..., min_length=1)


class SendOtpRequest(BaseModel):
    provider: str = Field(..., min_length=1, max_length=64)
    input: dict[str, Any] = Field(default_factory=dict)


class VerifyOtpRequest(BaseModel):
    provider: str = Field(..., min_length=1, max_length=64)
    input: dict[str, Any] = Field(default_factory=dict)
    code: str = Field(..., min_length=1, max_length=64)


class SessionTokenResponse(BaseModel):
    session_token: str
    token_type: str = "bearer"


class OtpSentResponse(BaseModel):
    sent: bool


class OkResponse(BaseModel):
    ok: bool


class AuthConfigResponse(BaseModel):
    oauth: dict[str, dict[str, Any]]
    otp: dict[str, dict[str, Any]]


class SessionSummaryResponse(BaseModel):
    id: str
    user_agent: str | None
    ip: str | None
    expires_at: datetime
    created_at: datetime
    last_used_at: datetime | None


class UserResponse(BaseModel):
    id: str
    name: str
    email: str | None
    phone: str | None
    profile_image_url: str | None
