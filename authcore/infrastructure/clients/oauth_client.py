from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from authcore.application.ports.oauth_client_port import OAuthClientPort
from authcore.domain.entities.oauth import OAuthToken, TokenSet
from authcore.domain.entities.provider import OAuthProviderConfig, UserProfile
from authcore.domain.entities.user import Account
from authcore.domain.exceptions import MissingAccessTokenError, UpstreamAuthError


logger = logging.getLogger(__name__)


def _now_epoch() -> int:
    return int(time.time())


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _scope_from_payload(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return " ".join(str(item) for item in value)
    return str(value)


def _expires_at_from_payload(payload: dict) -> int | None:
    try:
        if payload.get("expires_at") is not None:
            return int(payload["expires_at"])
        if payload.get("expires_in") is not None:
            return _now_epoch() + int(payload["expires_in"])
    except (TypeError, ValueError) as exc:
        raise UpstreamAuthError("Token endpoint returned an invalid expiry.") from exc
    return None


def _token_set_from_payload(payload: dict) -> TokenSet:
    return TokenSet(
        access_token=_optional_str(payload.get("access_token")),
        refresh_token=_optional_str(payload.get("refresh_token")),
        scope=_scope_from_payload(payload.get("scope")),
        expires_at=_expires_at_from_payload(payload),
        token_type=_optional_str(payload.get("token_type")),
    )


class HttpOAuthClient(OAuthClientPort):
    """Authorization-code client for one configured provider.

    Makes no retries: transport and HTTP failures surface as UpstreamAuthError
    and the user is expected to restart the login.
    """

    def __init__(
        self,
        config: OAuthProviderConfig,
        *,
        timeout_seconds: float = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._config = config
        self._timeout = timeout_seconds
        self._transport = transport

    @property
    def config(self) -> OAuthProviderConfig:
        return self._config

    async def exchange_code(self, *, code: str, redirect_uri: str) -> OAuthToken:
        payload = await self._request_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            }
        )
        return OAuthToken(config=self._config, token=_token_set_from_payload(payload))

    async def refresh(self, *, refresh_token: str) -> OAuthToken:
        payload = await self._request_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            }
        )
        return OAuthToken(config=self._config, token=_token_set_from_payload(payload))

    def from_stored_account(self, *, account: Account) -> OAuthToken:
        if not account.access_token:
            raise MissingAccessTokenError("Account does not have an access token.")
        return OAuthToken(
            config=self._config,
            token=TokenSet(
                access_token=account.access_token,
                refresh_token=account.refresh_token,
                scope=account.scope,
                expires_at=account.expires_at,
                token_type=account.token_type,
            ),
        )

    async def fetch_profile(self, *, token: OAuthToken) -> UserProfile:
        if not token.access_token:
            raise MissingAccessTokenError("Token does not carry an access token.")

        try:
            async with self._client() as client:
                response = await client.get(
                    self._config.userinfo_url,
                    headers={
                        "Authorization": f"Bearer {token.access_token}",
                        "Accept": "application/json",
                    },
                )
        except httpx.HTTPError as exc:
            logger.warning(
                "oauth_client: userinfo_request_failed provider=%s error=%s",
                self._config.id,
                exc,
            )
            raise UpstreamAuthError("Could not reach the provider user-info endpoint.") from exc

        if response.is_error:
            logger.warning(
                "oauth_client: userinfo_rejected provider=%s status=%s",
                self._config.id,
                response.status_code,
            )
            raise UpstreamAuthError(f"User-info endpoint returned HTTP {response.status_code}.")

        raw = self._json_body(response, endpoint="user-info")
        try:
            profile = self._config.profile(raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamAuthError("Provider profile could not be mapped.") from exc

        logger.info("oauth_client: fetched_profile provider=%s", self._config.id)
        return profile

    async def _request_token(self, form: dict[str, str]) -> dict:
        try:
            async with self._client() as client:
                response = await client.post(
                    self._config.token_url,
                    data=form,
                    auth=httpx.BasicAuth(self._config.client_id, self._config.client_secret),
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.warning(
                "oauth_client: token_request_failed provider=%s grant_type=%s error=%s",
                self._config.id,
                form["grant_type"],
                exc,
            )
            raise UpstreamAuthError("Could not reach the provider token endpoint.") from exc

        if response.is_error:
            logger.warning(
                "oauth_client: token_request_rejected provider=%s grant_type=%s status=%s",
                self._config.id,
                form["grant_type"],
                response.status_code,
            )
            raise UpstreamAuthError(f"Token endpoint returned HTTP {response.status_code}.")

        payload = self._json_body(response, endpoint="token")
        # Some providers (GitHub) report grant errors with a 200 status.
        if payload.get("error"):
            logger.warning(
                "oauth_client: token_grant_error provider=%s grant_type=%s error=%s",
                self._config.id,
                form["grant_type"],
                payload.get("error"),
            )
            raise UpstreamAuthError(f"Token endpoint error: {payload['error']}.")
        return payload

    def _json_body(self, response: httpx.Response, *, endpoint: str) -> dict:
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamAuthError(f"Provider {endpoint} endpoint returned invalid JSON.") from exc
        if not isinstance(payload, dict):
            raise UpstreamAuthError(f"Provider {endpoint} endpoint returned an unexpected payload.")
        return payload

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)


class HttpOAuthClientFactory:
    def __init__(self, *, timeout_seconds: float = 10, transport: httpx.AsyncBaseTransport | None = None):
        self._timeout = timeout_seconds
        self._transport = transport

    def __call__(self, config: OAuthProviderConfig) -> HttpOAuthClient:
        return HttpOAuthClient(config, timeout_seconds=self._timeout, transport=self._transport)
