from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from uuid import uuid4

from authcore.application.ports.session_token_port import SessionTokenPort


class SessionTokenService(SessionTokenPort):
    def __init__(self, *, ttl_days: int, token_bytes: int = 48):
        self._ttl_days = ttl_days
        self._token_bytes = token_bytes

    def generate_session_id(self) -> str:
        return str(uuid4())

    def generate_session_token(self) -> str:
        return secrets.token_urlsafe(self._token_bytes)

    def session_expires_at(self, *, now: datetime) -> datetime:
        return now + timedelta(days=self._ttl_days)
