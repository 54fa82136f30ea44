from __future__ import annotations

import logging
from dataclasses import replace

from authcore.application.ports.auth_port import AuthPort
from authcore.application.ports.oauth_client_port import OAuthClientFactory
from authcore.domain.entities.oauth import OAuthToken
from authcore.domain.entities.provider import ProviderRegistry
from authcore.domain.entities.user import Account, SessionContext
from authcore.domain.exceptions import MissingAccessTokenError, NoLinkedAccountError

from .auth_common import require_session


logger = logging.getLogger(__name__)


class GetProviderTokenUseCase:
    """Rebuilds the stored OAuth token of the caller for a downstream API client."""

    def __init__(
        self,
        *,
        providers: ProviderRegistry,
        auth_port: AuthPort,
        oauth_client_factory: OAuthClientFactory,
    ):
        self._providers = providers
        self._auth_port = auth_port
        self._oauth_client_factory = oauth_client_factory

    async def execute(self, *, session: SessionContext | None, provider: str) -> OAuthToken:
        current = require_session(session)
        config = self._providers.get_oauth(provider)
        account = await _linked_account(self._auth_port, user_id=current.user_id, provider=provider)
        return self._oauth_client_factory(config).from_stored_account(account=account)


class RefreshProviderTokenUseCase:
    """Refreshes the caller's stored OAuth token and writes the new material back.

    When the provider does not rotate refresh tokens the stored one is kept.
    """

    def __init__(
        self,
        *,
        providers: ProviderRegistry,
        auth_port: AuthPort,
        oauth_client_factory: OAuthClientFactory,
    ):
        self._providers = providers
        self._auth_port = auth_port
        self._oauth_client_factory = oauth_client_factory

    async def execute(self, *, session: SessionContext | None, provider: str) -> OAuthToken:
        current = require_session(session)
        config = self._providers.get_oauth(provider)
        account = await _linked_account(self._auth_port, user_id=current.user_id, provider=provider)
        if not account.refresh_token:
            raise MissingAccessTokenError("Account does not have a refresh token.")

        token = await self._oauth_client_factory(config).refresh(refresh_token=account.refresh_token)
        if not token.access_token:
            raise MissingAccessTokenError("Provider did not return an access token.")

        stored = replace(
            token.token,
            refresh_token=token.refresh_token or account.refresh_token,
            scope=token.scope or account.scope,
        )
        await self._auth_port.update_account_tokens(
            account_id=account.id,
            access_token=stored.access_token,
            refresh_token=stored.refresh_token,
            scope=stored.scope,
            expires_at=stored.expires_at,
        )
        logger.info(
            "provider_token: refreshed provider=%s user_id=%s",
            provider,
            current.user_id,
        )
        return OAuthToken(config=config, token=stored)


async def _linked_account(auth_port: AuthPort, *, user_id: str, provider: str) -> Account:
    account = await auth_port.get_account_for_provider_by_user_id(user_id=user_id, provider=provider)
    if account is None:
        raise NoLinkedAccountError(f"No {provider} account is linked to this user.")
    return account
