from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache

import httpx
from fastapi import Depends, Header, HTTPException, Request

from authcore.application.auth_service import AuthService
from authcore.application.ports.auth_port import AuthPort
from authcore.domain.entities.provider import OtpProviderConfig
from authcore.domain.entities.user import RequestMeta, SessionContext
from authcore.infrastructure.clients.oauth_client import HttpOAuthClientFactory
from authcore.infrastructure.clients.otp_verifier import OtpVerifier
from authcore.infrastructure.db.engine import get_engine
from authcore.infrastructure.db.repositories.auth_repository import SqlAuthRepository
from authcore.infrastructure.providers.presets import build_registry_from_settings
from authcore.infrastructure.security.session_token_service import SessionTokenService
from authcore.shared.config import Settings, get_settings


def build_auth_service(
    settings: Settings,
    *,
    auth_port: AuthPort | None = None,
    otp_providers: Mapping[str, OtpProviderConfig] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AuthService:
    if auth_port is None:
        if not settings.database_url:
            raise ValueError("DATABASE_URL is required when no storage adapter is given.")
        auth_port = SqlAuthRepository(get_engine(settings.database_url))
    return AuthService(
        providers=build_registry_from_settings(settings, otp=otp_providers),
        auth_port=auth_port,
        oauth_client_factory=HttpOAuthClientFactory(
            timeout_seconds=settings.oauth_http_timeout_seconds,
            transport=transport,
        ),
        otp_verifier=OtpVerifier(),
        token_port=SessionTokenService(
            ttl_days=settings.session_ttl_days,
            token_bytes=settings.session_token_bytes,
        ),
        persist_tokens_on_login=settings.persist_oauth_tokens_on_login,
    )


@lru_cache(maxsize=1)
def get_auth_service() -> AuthService:
    settings = get_settings()
    if not settings.database_url:
        raise HTTPException(status_code=500, detail="DATABASE_URL is required.")
    return build_auth_service(settings)


def get_request_meta(
    request: Request,
    user_agent: str | None = Header(default=None),
    x_forwarded_for: str | None = Header(default=None),
) -> RequestMeta:
    ip = x_forwarded_for.split(",")[0].strip() if x_forwarded_for else None
    if not ip and request.client is not None:
        ip = request.client.host
    return RequestMeta(user_agent=user_agent, ip=ip or None)


def _bearer_from_header(authorization: str | None) -> str | None:
    parts = (authorization or "").split(None, 1)
    if not parts:
        return None
    if len(parts) == 1:
        # A bare scheme carries no credential; anything else is a raw token.
        return None if parts[0].lower() == "bearer" else parts[0]
    scheme, credential = parts
    if scheme.lower() != "bearer":
        return None
    return credential.strip() or None


async def get_optional_session(
    authorization: str | None = Header(default=None),
    service: AuthService = Depends(get_auth_service),
) -> SessionContext | None:
    return await service.authenticate(_bearer_from_header(authorization))


def get_current_session(session: SessionContext | None = Depends(get_optional_session)) -> SessionContext:
    if session is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthenticated", "message": "Authentication required."},
        )
    return session
