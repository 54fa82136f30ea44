from __future__ import annotations

import json
import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _json(name: str) -> dict:
    value = _env(name)
    if not value:
        return {}
    return json.loads(value)


def _bool(name: str, default: str = "false") -> bool:
    return (_env(name, default) or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str
    session_ttl_days: int
    session_token_bytes: int
    oauth_http_timeout_seconds: float
    persist_oauth_tokens_on_login: bool
    github_client_id: str
    github_client_secret: str
    google_client_id: str
    google_client_secret: str
    oauth_providers: dict


def get_settings() -> Settings:
    return Settings(
        database_url=_env("DATABASE_URL", ""),
        session_ttl_days=int(_env("SESSION_TTL_DAYS", "3650")),
        session_token_bytes=int(_env("SESSION_TOKEN_BYTES", "48")),
        oauth_http_timeout_seconds=float(_env("OAUTH_HTTP_TIMEOUT_SECONDS", "10")),
        persist_oauth_tokens_on_login=_bool("PERSIST_OAUTH_TOKENS_ON_LOGIN"),
        github_client_id=_env("GITHUB_CLIENT_ID", ""),
        github_client_secret=_env("GITHUB_CLIENT_SECRET", ""),
        google_client_id=_env("GOOGLE_CLIENT_ID", ""),
        google_client_secret=_env("GOOGLE_CLIENT_SECRET", ""),
        oauth_providers=_json("OAUTH_PROVIDERS_JSON"),
    )
