from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from authcore.application.dto.auth import OAuthCallbackInput, SendOtpInput, VerifyOtpInput
from authcore.application.ports.auth_port import AuthPort
from authcore.application.ports.oauth_client_port import OAuthClientFactory
from authcore.application.ports.otp_verifier_port import OtpVerifierPort
from authcore.application.ports.session_token_port import SessionTokenPort
from authcore.application.use_cases.authenticate_session import AuthenticateSessionUseCase, LoadUserUseCase
from authcore.application.use_cases.manage_sessions import (
    ListSessionsUseCase,
    LogoutSessionUseCase,
    RevokeAllSessionsUseCase,
    RevokeSessionUseCase,
)
from authcore.application.use_cases.oauth_callback import OAuthCallbackUseCase
from authcore.application.use_cases.provider_token import GetProviderTokenUseCase, RefreshProviderTokenUseCase
from authcore.application.use_cases.send_otp import SendOtpUseCase
from authcore.application.use_cases.verify_otp import VerifyOtpUseCase
from authcore.domain.entities.oauth import OAuthToken
from authcore.domain.entities.provider import ProviderRegistry
from authcore.domain.entities.user import RequestMeta, SessionContext, SessionSummary, User


class AuthService:
    """Public operations offered to the host's routing layer.

    Constructed once at startup with the provider registry and the host's
    storage adapter. Authenticated operations take the SessionContext returned
    by authenticate() and raise UnauthenticatedError when it is None.
    """

    def __init__(
        self,
        *,
        providers: ProviderRegistry,
        auth_port: AuthPort,
        oauth_client_factory: OAuthClientFactory,
        otp_verifier: OtpVerifierPort,
        token_port: SessionTokenPort,
        persist_tokens_on_login: bool = False,
    ):
        self._providers = providers
        self._oauth_callback = OAuthCallbackUseCase(
            providers=providers,
            auth_port=auth_port,
            oauth_client_factory=oauth_client_factory,
            token_port=token_port,
            persist_tokens_on_login=persist_tokens_on_login,
        )
        self._send_otp = SendOtpUseCase(providers=providers, otp_verifier=otp_verifier)
        self._verify_otp = VerifyOtpUseCase(
            providers=providers,
            auth_port=auth_port,
            otp_verifier=otp_verifier,
            token_port=token_port,
        )
        self._authenticate = AuthenticateSessionUseCase(auth_port=auth_port)
        self._load_user = LoadUserUseCase(auth_port=auth_port)
        self._list_sessions = ListSessionsUseCase(auth_port=auth_port)
        self._logout = LogoutSessionUseCase(auth_port=auth_port)
        self._revoke_all = RevokeAllSessionsUseCase(auth_port=auth_port)
        self._revoke = RevokeSessionUseCase(auth_port=auth_port)
        self._get_provider_token = GetProviderTokenUseCase(
            providers=providers,
            auth_port=auth_port,
            oauth_client_factory=oauth_client_factory,
        )
        self._refresh_provider_token = RefreshProviderTokenUseCase(
            providers=providers,
            auth_port=auth_port,
            oauth_client_factory=oauth_client_factory,
        )

    @property
    def providers(self) -> ProviderRegistry:
        return self._providers

    def get_auth_config(self) -> dict:
        return self._providers.public_config()

    async def oauth_callback(
        self,
        *,
        provider: str,
        code: str,
        redirect_uri: str,
        meta: RequestMeta | None = None,
    ) -> str:
        meta = meta or RequestMeta()
        output = await self._oauth_callback.execute(
            OAuthCallbackInput(
                provider=provider,
                code=code,
                redirect_uri=redirect_uri,
                user_agent=meta.user_agent,
                ip=meta.ip,
            )
        )
        return output.session_token

    async def send_otp(self, *, provider: str, input: Mapping[str, Any]) -> bool:
        return await self._send_otp.execute(SendOtpInput(provider=provider, input=input))

    async def verify_otp(
        self,
        *,
        provider: str,
        input: Mapping[str, Any],
        code: str,
        meta: RequestMeta | None = None,
    ) -> str:
        meta = meta or RequestMeta()
        output = await self._verify_otp.execute(
            VerifyOtpInput(
                provider=provider,
                input=input,
                code=code,
                user_agent=meta.user_agent,
                ip=meta.ip,
            )
        )
        return output.session_token

    async def authenticate(self, bearer_token: str | None) -> SessionContext | None:
        return await self._authenticate.execute(bearer_token=bearer_token)

    async def load_user(self, user_id: str) -> User | None:
        return await self._load_user.execute(user_id=user_id)

    async def list_sessions(self, session: SessionContext | None) -> list[SessionSummary]:
        return await self._list_sessions.execute(session=session)

    async def logout(self, session: SessionContext | None) -> bool:
        await self._logout.execute(session=session)
        return True

    async def revoke_all(self, session: SessionContext | None) -> bool:
        await self._revoke_all.execute(session=session)
        return True

    async def revoke(self, session: SessionContext | None, session_id: str) -> bool:
        await self._revoke.execute(session=session, session_id=session_id)
        return True

    async def get_token_for_provider(self, session: SessionContext | None, provider: str) -> OAuthToken:
        return await self._get_provider_token.execute(session=session, provider=provider)

    async def refresh_token_for_provider(self, session: SessionContext | None, provider: str) -> OAuthToken:
        return await self._refresh_provider_token.execute(session=session, provider=provider)
