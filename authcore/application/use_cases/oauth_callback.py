from __future__ import annotations

import logging
from uuid import uuid4

from authcore.application.dto.auth import IssuedSessionOutput, OAuthCallbackInput
from authcore.application.ports.auth_port import AuthPort
from authcore.application.ports.oauth_client_port import OAuthClientFactory
from authcore.application.ports.session_token_port import SessionTokenPort
from authcore.domain.entities.oauth import OAuthToken
from authcore.domain.entities.provider import ProviderRegistry, UserProfile
from authcore.domain.exceptions import EmailAlreadyLinkedError

from .auth_common import issue_session, normalize_email, utcnow


logger = logging.getLogger(__name__)


class OAuthCallbackUseCase:
    """Turns an authorization code into a session.

    Known identity: new session for the linked user. Unknown identity whose
    email already belongs to a user: rejected, never merged. Otherwise a user,
    its account and a session are created in one transaction.
    """

    def __init__(
        self,
        *,
        providers: ProviderRegistry,
        auth_port: AuthPort,
        oauth_client_factory: OAuthClientFactory,
        token_port: SessionTokenPort,
        persist_tokens_on_login: bool = False,
    ):
        self._providers = providers
        self._auth_port = auth_port
        self._oauth_client_factory = oauth_client_factory
        self._token_port = token_port
        self._persist_tokens_on_login = persist_tokens_on_login

    async def execute(self, command: OAuthCallbackInput) -> IssuedSessionOutput:
        config = self._providers.get_oauth(command.provider)
        client = self._oauth_client_factory(config)

        token = await client.exchange_code(code=command.code, redirect_uri=command.redirect_uri)
        profile = await client.fetch_profile(token=token)

        account = await self._auth_port.get_account_from_provider_account_id(
            provider=command.provider,
            provider_account_id=profile.id,
        )
        if account is not None:
            if self._persist_tokens_on_login:
                await self._auth_port.update_account_tokens(
                    account_id=account.id,
                    access_token=token.access_token,
                    refresh_token=token.refresh_token or account.refresh_token,
                    scope=token.scope or account.scope,
                    expires_at=token.expires_at,
                )
            session = await issue_session(
                user_id=account.user_id,
                auth_port=self._auth_port,
                token_port=self._token_port,
                user_agent=command.user_agent,
                ip=command.ip,
            )
            logger.info(
                "oauth_callback: session_issued provider=%s user_id=%s new_user=false",
                command.provider,
                account.user_id,
            )
            return IssuedSessionOutput(
                session_id=session.id,
                session_token=session.session_token,
                user_id=account.user_id,
                created_user=False,
            )

        email = normalize_email(profile.email) if profile.email else None
        if email is not None:
            existing = await self._auth_port.get_user_from_email(email=email)
            if existing is not None:
                logger.warning(
                    "oauth_callback: email_already_linked provider=%s existing_user_id=%s",
                    command.provider,
                    existing.id,
                )
                raise EmailAlreadyLinkedError("A user with this email already exists.")

        async def _tx(auth_port: AuthPort) -> IssuedSessionOutput:
            return await self._provision(
                auth_port=auth_port,
                provider=command.provider,
                profile=profile,
                email=email,
                token=token,
                command=command,
            )

        output = await self._auth_port.run_in_transaction(_tx)
        logger.info(
            "oauth_callback: session_issued provider=%s user_id=%s new_user=true",
            command.provider,
            output.user_id,
        )
        return output

    async def _provision(
        self,
        *,
        auth_port: AuthPort,
        provider: str,
        profile: UserProfile,
        email: str | None,
        token: OAuthToken,
        command: OAuthCallbackInput,
    ) -> IssuedSessionOutput:
        user = await auth_port.create_user(
            user_id=str(uuid4()),
            name=profile.name,
            email=email,
            phone=None,
            profile_image_url=profile.image,
        )
        await auth_port.create_account(
            account_id=str(uuid4()),
            user_id=user.id,
            provider=provider,
            provider_account_id=profile.id,
            access_token=token.access_token,
            refresh_token=token.refresh_token,
            scope=token.scope,
            expires_at=token.expires_at,
            token_type=token.token_type,
            created_at=utcnow(),
        )
        session = await issue_session(
            user_id=user.id,
            auth_port=auth_port,
            token_port=self._token_port,
            user_agent=command.user_agent,
            ip=command.ip,
        )
        return IssuedSessionOutput(
            session_id=session.id,
            session_token=session.session_token,
            user_id=user.id,
            created_user=True,
        )
