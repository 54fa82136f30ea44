from __future__ import annotations

from authcore.application.ports.auth_port import AuthPort
from authcore.domain.entities.user import SessionContext, User

from .auth_common import utcnow


class AuthenticateSessionUseCase:
    """Resolves a bearer token to a session context.

    The adapter matches only non-revoked sessions and stamps last_used_at in
    the same statement. Expiry is checked here, after the touch.
    """

    def __init__(self, *, auth_port: AuthPort):
        self._auth_port = auth_port

    async def execute(self, *, bearer_token: str | None) -> SessionContext | None:
        token = (bearer_token or "").strip()
        if not token:
            return None

        now = utcnow()
        session = await self._auth_port.get_session_from_token_and_touch(session_token=token, now=now)
        if session is None:
            return None
        if session.expires_at <= now:
            return None
        return SessionContext(id=session.id, user_id=session.user_id)


class LoadUserUseCase:
    def __init__(self, *, auth_port: AuthPort):
        self._auth_port = auth_port

    async def execute(self, *, user_id: str) -> User | None:
        return await self._auth_port.get_user_from_id(user_id=user_id)
