from __future__ import annotations

import logging

from authcore.application.ports.auth_port import AuthPort
from authcore.domain.entities.user import SessionContext, SessionSummary
from authcore.domain.exceptions import SessionNotFoundError

from .auth_common import require_session, utcnow


logger = logging.getLogger(__name__)


class ListSessionsUseCase:
    def __init__(self, *, auth_port: AuthPort):
        self._auth_port = auth_port

    async def execute(self, *, session: SessionContext | None) -> list[SessionSummary]:
        current = require_session(session)
        sessions = await self._auth_port.get_sessions_for_user(user_id=current.user_id)
        return [SessionSummary.from_session(item) for item in sessions if item.revoked_at is None]


class LogoutSessionUseCase:
    def __init__(self, *, auth_port: AuthPort):
        self._auth_port = auth_port

    async def execute(self, *, session: SessionContext | None) -> None:
        current = require_session(session)
        await self._auth_port.revoke_session(session_id=current.id, revoked_at=utcnow())
        logger.info("sessions: logout session_id=%s user_id=%s", current.id, current.user_id)


class RevokeAllSessionsUseCase:
    def __init__(self, *, auth_port: AuthPort):
        self._auth_port = auth_port

    async def execute(self, *, session: SessionContext | None) -> None:
        current = require_session(session)
        await self._auth_port.revoke_all_from_user(user_id=current.user_id, revoked_at=utcnow())
        logger.info("sessions: revoke_all user_id=%s", current.user_id)


class RevokeSessionUseCase:
    """Revokes one of the caller's sessions.

    Ownership is checked before the write. A session that is missing or owned
    by someone else is reported as not found. Revoking an already revoked
    session succeeds and keeps the original revocation time.
    """

    def __init__(self, *, auth_port: AuthPort):
        self._auth_port = auth_port

    async def execute(self, *, session: SessionContext | None, session_id: str) -> None:
        current = require_session(session)
        target = await self._auth_port.get_session_for_user_from_id(
            user_id=current.user_id,
            session_id=session_id,
        )
        if target is None:
            raise SessionNotFoundError("Session not found.")
        await self._auth_port.revoke_session(session_id=target.id, revoked_at=utcnow())
        logger.info("sessions: revoked session_id=%s user_id=%s", target.id, current.user_id)
