from __future__ import annotations

from datetime import datetime
from typing import Protocol


class SessionTokenPort(Protocol):
    def generate_session_id(self) -> str:
        ...

    def generate_session_token(self) -> str:
        ...

    def session_expires_at(self, *, now: datetime) -> datetime:
        ...
