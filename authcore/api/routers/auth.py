from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException

from authcore.api.deps import get_auth_service, get_current_session, get_request_meta
from authcore.api.schemas.auth import (
    AuthConfigResponse,
    OAuthCallbackRequest,
    OkResponse,
    OtpSentResponse,
    SendOtpRequest,
    SessionSummaryResponse,
    SessionTokenResponse,
    UserResponse,
    VerifyOtpRequest,
)
from authcore.application.auth_service import AuthService
from authcore.domain.entities.user import RequestMeta, SessionContext
from authcore.domain.exceptions import (
    ConfigurationError,
    ConflictError,
    DomainError,
    NotFoundError,
    UnauthenticatedError,
    UpstreamAuthError,
    ValidationError,
)


router = APIRouter()

_STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (UnauthenticatedError, 401),
    (ConfigurationError, 400),
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (UpstreamAuthError, 502),
)


def _raise_http(exc: DomainError) -> NoReturn:
    status_code = 400
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break
    raise HTTPException(
        status_code=status_code,
        detail={"code": exc.code, "message": str(exc), "retryable": exc.retryable},
    ) from exc


@router.get("/v1/auth/config", response_model=AuthConfigResponse)
def get_auth_config(service: AuthService = Depends(get_auth_service)):
    return AuthConfigResponse(**service.get_auth_config())


@router.post("/v1/auth/oauth/callback", response_model=SessionTokenResponse)
async def oauth_callback(
    req: OAuthCallbackRequest,
    meta: RequestMeta = Depends(get_request_meta),
    service: AuthService = Depends(get_auth_service),
):
    try:
        token = await service.oauth_callback(
            provider=req.provider,
            code=req.code,
            redirect_uri=req.redirect_uri,
            meta=meta,
        )
    except DomainError as exc:
        _raise_http(exc)
    return SessionTokenResponse(session_token=token)


@router.post("/v1/auth/otp/send", response_model=OtpSentResponse)
async def send_otp(
    req: SendOtpRequest,
    service: AuthService = Depends(get_auth_service),
):
    try:
        sent = await service.send_otp(provider=req.provider, input=req.input)
    except DomainError as exc:
        _raise_http(exc)
    return OtpSentResponse(sent=sent)


@router.post("/v1/auth/otp/verify", response_model=SessionTokenResponse)
async def verify_otp(
    req: VerifyOtpRequest,
    meta: RequestMeta = Depends(get_request_meta),
    service: AuthService = Depends(get_auth_service),
):
    try:
        token = await service.verify_otp(
            provider=req.provider,
            input=req.input,
            code=req.code,
            meta=meta,
        )
    except DomainError as exc:
        _raise_http(exc)
    return SessionTokenResponse(session_token=token)


@router.get("/v1/auth/me", response_model=UserResponse)
async def get_me(
    session: SessionContext = Depends(get_current_session),
    service: AuthService = Depends(get_auth_service),
):
    user = await service.load_user(session.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail={"code": "user_not_found", "message": "User not found."})
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        phone=user.phone,
        profile_image_url=user.profile_image_url,
    )


@router.get("/v1/auth/sessions", response_model=list[SessionSummaryResponse])
async def list_sessions(
    session: SessionContext = Depends(get_current_session),
    service: AuthService = Depends(get_auth_service),
):
    summaries = await service.list_sessions(session)
    return [
        SessionSummaryResponse(
            id=item.id,
            user_agent=item.user_agent,
            ip=item.ip,
            expires_at=item.expires_at,
            created_at=item.created_at,
            last_used_at=item.last_used_at,
        )
        for item in summaries
    ]


@router.post("/v1/auth/logout", response_model=OkResponse)
async def logout(
    session: SessionContext = Depends(get_current_session),
    service: AuthService = Depends(get_auth_service),
):
    return OkResponse(ok=await service.logout(session))


@router.post("/v1/auth/sessions/revoke-all", response_model=OkResponse)
async def revoke_all_sessions(
    session: SessionContext = Depends(get_current_session),
    service: AuthService = Depends(get_auth_service),
):
    return OkResponse(ok=await service.revoke_all(session))


@router.post("/v1/auth/sessions/{session_id}/revoke", response_model=OkResponse)
async def revoke_session(
    session_id: str,
    session: SessionContext = Depends(get_current_session),
    service: AuthService = Depends(get_auth_service),
):
    try:
        ok = await service.revoke(session, session_id)
    except DomainError as exc:
        _raise_http(exc)
    return OkResponse(ok=ok)
