from __future__ import annotations

from datetime import datetime, timezone

from authcore.application.ports.auth_port import AuthPort
from authcore.application.ports.session_token_port import SessionTokenPort
from authcore.domain.entities.user import Session, SessionContext
from authcore.domain.exceptions import UnauthenticatedError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def require_session(session: SessionContext | None) -> SessionContext:
    if session is None or not session.user_id:
        raise UnauthenticatedError("Authentication required.")
    return session


async def issue_session(
    *,
    user_id: str,
    auth_port: AuthPort,
    token_port: SessionTokenPort,
    user_agent: str | None,
    ip: str | None,
) -> Session:
    now = utcnow()
    return await auth_port.create_session(
        session_id=token_port.generate_session_id(),
        user_id=user_id,
        session_token=token_port.generate_session_token(),
        expires_at=token_port.session_expires_at(now=now),
        created_at=now,
        user_agent=user_agent,
        ip=ip,
    )
