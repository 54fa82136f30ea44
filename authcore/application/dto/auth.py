from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class OAuthCallbackInput:
    provider: str
    code: str
    redirect_uri: str
    user_agent: str | None
    ip: str | None


@dataclass(frozen=True)
class SendOtpInput:
    provider: str
    input: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class VerifyOtpInput:
    provider: str
    code: str
    input: Mapping[str, Any] = field(default_factory=dict)
    user_agent: str | None = None
    ip: str | None = None


@dataclass(frozen=True)
class IssuedSessionOutput:
    session_id: str
    session_token: str
    user_id: str
    created_user: bool
