from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str | None
    phone: str | None
    profile_image_url: str | None


@dataclass(frozen=True)
class Account:
    id: str
    user_id: str
    provider: str
    provider_account_id: str
    access_token: str | None
    refresh_token: str | None
    scope: str | None
    expires_at: int | None
    token_type: str | None
    created_at: datetime


@dataclass(frozen=True)
class Session:
    id: str
    user_id: str
    session_token: str
    expires_at: datetime
    created_at: datetime
    last_used_at: datetime | None
    revoked_at: datetime | None
    user_agent: str | None
    ip: str | None

    def is_active(self, now: datetime) -> bool:
        return self.revoked_at is None and now < self.expires_at


@dataclass(frozen=True)
class SessionSummary:
    """A session as shown back to its owner. The bearer token is never included."""

    id: str
    user_agent: str | None
    ip: str | None
    expires_at: datetime
    created_at: datetime
    last_used_at: datetime | None

    @classmethod
    def from_session(cls, session: Session) -> SessionSummary:
        return cls(
            id=session.id,
            user_agent=session.user_agent,
            ip=session.ip,
            expires_at=session.expires_at,
            created_at=session.created_at,
            last_used_at=session.last_used_at,
        )


@dataclass(frozen=True)
class SessionContext:
    id: str
    user_id: str


@dataclass(frozen=True)
class RequestMeta:
    user_agent: str | None = None
    ip: str | None = None
