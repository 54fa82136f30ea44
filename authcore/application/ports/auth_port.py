from __future__ import annotations

from collections.abc import Awaitable
from datetime import datetime
from typing import Callable, Protocol, TypeVar

from authcore.domain.entities.user import Account, Session, User


TAuthResult = TypeVar("TAuthResult")


class AuthPort(Protocol):
    """Storage contract the host implements.

    Implementations own the invariants this core relies on:
    unique (provider, provider_account_id) surfaced as AccountAlreadyLinkedError,
    unique email/phone surfaced as UserAlreadyExistsError, and an atomic
    lookup-and-touch in get_session_from_token_and_touch.
    """

    async def run_in_transaction(self, fn: Callable[[AuthPort], Awaitable[TAuthResult]]) -> TAuthResult:
        ...

    async def get_user_from_id(self, *, user_id: str) -> User | None:
        ...

    async def get_user_from_email(self, *, email: str) -> User | None:
        ...

    async def get_user_from_phone(self, *, phone: str) -> User | None:
        ...

    async def create_user(
        self,
        *,
        user_id: str,
        name: str,
        email: str | None,
        phone: str | None,
        profile_image_url: str | None,
    ) -> User:
        ...

    async def create_account(
        self,
        *,
        account_id: str,
        user_id: str,
        provider: str,
        provider_account_id: str,
        access_token: str | None,
        refresh_token: str | None,
        scope: str | None,
        expires_at: int | None,
        token_type: str | None,
        created_at: datetime,
    ) -> Account:
        ...

    async def get_account_from_provider_account_id(
        self,
        *,
        provider: str,
        provider_account_id: str,
    ) -> Account | None:
        ...

    async def get_account_for_provider_by_user_id(self, *, user_id: str, provider: str) -> Account | None:
        ...

    async def update_account_tokens(
        self,
        *,
        account_id: str,
        access_token: str | None,
        refresh_token: str | None,
        scope: str | None,
        expires_at: int | None,
    ) -> None:
        ...

    async def create_session(
        self,
        *,
        session_id: str,
        user_id: str,
        session_token: str,
        expires_at: datetime,
        created_at: datetime,
        user_agent: str | None,
        ip: str | None,
    ) -> Session:
        ...

    async def get_session_from_token_and_touch(self, *, session_token: str, now: datetime) -> Session | None:
        ...

    async def get_sessions_for_user(self, *, user_id: str) -> list[Session]:
        ...

    async def get_session_for_user_from_id(self, *, user_id: str, session_id: str) -> Session | None:
        ...

    async def revoke_session(self, *, session_id: str, revoked_at: datetime) -> None:
        ...

    async def revoke_all_from_user(self, *, user_id: str, revoked_at: datetime) -> None:
        ...
