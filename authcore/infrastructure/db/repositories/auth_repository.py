from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from authcore.application.ports.auth_port import AuthPort
from authcore.domain.exceptions import AccountAlreadyLinkedError, UserAlreadyExistsError
from authcore.infrastructure.db.mappers.auth_mapper import (
    map_row_to_account,
    map_row_to_session,
    map_row_to_user,
)
from authcore.infrastructure.db.models.auth import AccountModel, SessionModel, UserModel


logger = logging.getLogger(__name__)

T = TypeVar("T")

_users = UserModel.__table__
_accounts = AccountModel.__table__
_sessions = SessionModel.__table__


class SqlAuthRepository(AuthPort):
    """AuthPort over SQLAlchemy's asyncio engine.

    Each call runs in its own transaction unless the repository was handed a
    connection by run_in_transaction, in which case every call shares it and
    the whole unit commits or rolls back together.
    """

    def __init__(self, engine: AsyncEngine, *, connection: AsyncConnection | None = None):
        self._engine = engine
        self._connection = connection

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[AsyncConnection]:
        if self._connection is not None:
            yield self._connection
            return
        async with self._engine.begin() as conn:
            yield conn

    async def run_in_transaction(self, fn: Callable[[AuthPort], Awaitable[T]]) -> T:
        if self._connection is not None:
            return await fn(self)
        async with self._engine.begin() as conn:
            return await fn(SqlAuthRepository(self._engine, connection=conn))

    # users

    async def get_user_from_id(self, *, user_id: str):
        stmt = select(_users).where(_users.c.id == user_id).limit(1)
        async with self._connect() as conn:
            row = (await conn.execute(stmt)).mappings().first()
        return map_row_to_user(row) if row is not None else None

    async def get_user_from_email(self, *, email: str):
        stmt = select(_users).where(func.lower(_users.c.email) == email.strip().lower()).limit(1)
        async with self._connect() as conn:
            row = (await conn.execute(stmt)).mappings().first()
        return map_row_to_user(row) if row is not None else None

    async def get_user_from_phone(self, *, phone: str):
        stmt = select(_users).where(_users.c.phone == phone).limit(1)
        async with self._connect() as conn:
            row = (await conn.execute(stmt)).mappings().first()
        return map_row_to_user(row) if row is not None else None

    async def create_user(
        self,
        *,
        user_id: str,
        name: str,
        email: str | None,
        phone: str | None,
        profile_image_url: str | None,
    ):
        stmt = (
            _users.insert()
            .values(
                id=user_id,
                name=name,
                email=email,
                phone=phone,
                profile_image_url=profile_image_url,
            )
            .returning(*_users.c)
        )
        try:
            async with self._connect() as conn:
                row = (await conn.execute(stmt)).mappings().one()
        except IntegrityError as exc:
            logger.warning("auth_repo: user_conflict user_id=%s", user_id)
            raise UserAlreadyExistsError("A user with this email or phone already exists.") from exc
        return map_row_to_user(row)

    # accounts

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
    ):
        stmt = (
            _accounts.insert()
            .values(
                id=account_id,
                user_id=user_id,
                provider=provider,
                provider_account_id=provider_account_id,
                access_token=access_token,
                refresh_token=refresh_token,
                scope=scope,
                expires_at=expires_at,
                token_type=token_type,
                created_at=created_at,
            )
            .returning(*_accounts.c)
        )
        try:
            async with self._connect() as conn:
                row = (await conn.execute(stmt)).mappings().one()
        except IntegrityError as exc:
            logger.warning(
                "auth_repo: account_conflict provider=%s provider_account_id=%s",
                provider,
                provider_account_id,
            )
            raise AccountAlreadyLinkedError("This provider account is already linked to a user.") from exc
        return map_row_to_account(row)

    async def get_account_from_provider_account_id(self, *, provider: str, provider_account_id: str):
        stmt = (
            select(_accounts)
            .where(
                (_accounts.c.provider == provider)
                & (_accounts.c.provider_account_id == provider_account_id)
            )
            .limit(1)
        )
        async with self._connect() as conn:
            row = (await conn.execute(stmt)).mappings().first()
        return map_row_to_account(row) if row is not None else None

    async def get_account_for_provider_by_user_id(self, *, user_id: str, provider: str):
        stmt = (
            select(_accounts)
            .where((_accounts.c.user_id == user_id) & (_accounts.c.provider == provider))
            .order_by(_accounts.c.created_at.desc())
            .limit(1)
        )
        async with self._connect() as conn:
            row = (await conn.execute(stmt)).mappings().first()
        return map_row_to_account(row) if row is not None else None

    async def update_account_tokens(
        self,
        *,
        account_id: str,
        access_token: str | None,
        refresh_token: str | None,
        scope: str | None,
        expires_at: int | None,
    ) -> None:
        stmt = (
            update(_accounts)
            .where(_accounts.c.id == account_id)
            .values(
                access_token=access_token,
                refresh_token=refresh_token,
                scope=scope,
                expires_at=expires_at,
            )
        )
        async with self._connect() as conn:
            await conn.execute(stmt)

    # sessions

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
    ):
        stmt = (
            _sessions.insert()
            .values(
                id=session_id,
                user_id=user_id,
                session_token=session_token,
                expires_at=expires_at,
                created_at=created_at,
                last_used_at=None,
                revoked_at=None,
                user_agent=user_agent,
                ip=ip,
            )
            .returning(*_sessions.c)
        )
        async with self._connect() as conn:
            row = (await conn.execute(stmt)).mappings().one()
        return map_row_to_session(row)

    async def get_session_from_token_and_touch(self, *, session_token: str, now: datetime):
        # Single UPDATE ... RETURNING so a concurrent revoke cannot slip in
        # between the lookup and the last_used_at write.
        stmt = (
            update(_sessions)
            .where((_sessions.c.session_token == session_token) & (_sessions.c.revoked_at.is_(None)))
            .values(last_used_at=now)
            .returning(*_sessions.c)
        )
        async with self._connect() as conn:
            row = (await conn.execute(stmt)).mappings().first()
        return map_row_to_session(row) if row is not None else None

    async def get_sessions_for_user(self, *, user_id: str):
        stmt = (
            select(_sessions)
            .where((_sessions.c.user_id == user_id) & (_sessions.c.revoked_at.is_(None)))
            .order_by(_sessions.c.created_at.desc())
        )
        async with self._connect() as conn:
            rows = (await conn.execute(stmt)).mappings().all()
        return [map_row_to_session(row) for row in rows]

    async def get_session_for_user_from_id(self, *, user_id: str, session_id: str):
        stmt = (
            select(_sessions)
            .where((_sessions.c.id == session_id) & (_sessions.c.user_id == user_id))
            .limit(1)
        )
        async with self._connect() as conn:
            row = (await conn.execute(stmt)).mappings().first()
        return map_row_to_session(row) if row is not None else None

    async def revoke_session(self, *, session_id: str, revoked_at: datetime) -> None:
        # Only the first revocation is recorded; later calls are no-ops.
        stmt = (
            update(_sessions)
            .where((_sessions.c.id == session_id) & (_sessions.c.revoked_at.is_(None)))
            .values(revoked_at=revoked_at)
        )
        async with self._connect() as conn:
            await conn.execute(stmt)

    async def revoke_all_from_user(self, *, user_id: str, revoked_at: datetime) -> None:
        stmt = (
            update(_sessions)
            .where((_sessions.c.user_id == user_id) & (_sessions.c.revoked_at.is_(None)))
            .values(revoked_at=revoked_at)
        )
        async with self._connect() as conn:
            result = await conn.execute(stmt)
        logger.info("auth_repo: revoked_all user_id=%s count=%s", user_id, result.rowcount)
