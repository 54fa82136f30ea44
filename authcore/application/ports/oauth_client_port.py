from __future__ import annotations

from typing import Protocol

from authcore.domain.entities.oauth import OAuthToken
from authcore.domain.entities.provider import OAuthProviderConfig, UserProfile
from authcore.domain.entities.user import Account


class OAuthClientPort(Protocol):
    async def exchange_code(self, *, code: str, redirect_uri: str) -> OAuthToken:
        ...

    async def refresh(self, *, refresh_token: str) -> OAuthToken:
        ...

    def from_stored_account(self, *, account: Account) -> OAuthToken:
        ...

    async def fetch_profile(self, *, token: OAuthToken) -> UserProfile:
        ...


class OAuthClientFactory(Protocol):
    def __call__(self, config: OAuthProviderConfig) -> OAuthClientPort:
        ...
