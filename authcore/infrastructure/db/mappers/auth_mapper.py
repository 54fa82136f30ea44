from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from authcore.domain.entities.user import Account, Session, User


def _as_str(value: Any) -> str:
    return str(value)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; every stored timestamp is UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def map_row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        id=_as_str(row["id"]),
        name=row["name"] or "",
        email=row.get("email"),
        phone=row.get("phone"),
        profile_image_url=row.get("profile_image_url"),
    )


def map_row_to_account(row: Mapping[str, Any]) -> Account:
    return Account(
        id=_as_str(row["id"]),
        user_id=_as_str(row["user_id"]),
        provider=row["provider"],
        provider_account_id=_as_str(row["provider_account_id"]),
        access_token=row.get("access_token"),
        refresh_token=row.get("refresh_token"),
        scope=row.get("scope"),
        expires_at=int(row["expires_at"]) if row.get("expires_at") is not None else None,
        token_type=row.get("token_type"),
        created_at=_as_utc(row["created_at"]),
    )


def map_row_to_session(row: Mapping[str, Any]) -> Session:
    return Session(
        id=_as_str(row["id"]),
        user_id=_as_str(row["user_id"]),
        session_token=row["session_token"],
        expires_at=_as_utc(row["expires_at"]),
        created_at=_as_utc(row["created_at"]),
        last_used_at=_as_utc(row.get("last_used_at")),
        revoked_at=_as_utc(row.get("revoked_at")),
        user_agent=row.get("user_agent"),
        ip=row.get("ip"),
    )
