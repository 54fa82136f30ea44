from __future__ import annotations

from dataclasses import dataclass

from authcore.domain.entities.provider import OAuthProviderConfig


@dataclass(frozen=True)
class TokenSet:
    access_token: str | None
    refresh_token: str | None = None
    scope: str | None = None
    expires_at: int | None = None
    token_type: str | None = None


@dataclass(frozen=True)
class OAuthToken:
    """Token material bound to the provider it was issued by.

    Lives for one request. Its fields are copied onto an Account when the
    identity is linked; the handle itself is never stored.
    """

    config: OAuthProviderConfig
    token: TokenSet

    @property
    def provider_id(self) -> str:
        return self.config.id

    @property
    def access_token(self) -> str | None:
        return self.token.access_token

    @property
    def refresh_token(self) -> str | None:
        return self.token.refresh_token

    @property
    def scope(self) -> str | None:
        return self.token.scope

    @property
    def expires_at(self) -> int | None:
        return self.token.expires_at

    @property
    def token_type(self) -> str | None:
        return self.token.token_type

    def is_expired(self, now_epoch: int) -> bool:
        return self.token.expires_at is not None and self.token.expires_at <= now_epoch
