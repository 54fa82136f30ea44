from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from authcore.domain.entities.provider import (
    OAuthProviderConfig,
    OtpProviderConfig,
    ProfileMapper,
    ProviderRegistry,
    UserProfile,
)
from authcore.domain.exceptions import ConfigurationError
from authcore.shared.config import Settings


logger = logging.getLogger(__name__)


def _github_profile(profile: Mapping[str, Any]) -> UserProfile:
    return UserProfile(
        id=str(profile["id"]),
        name=profile.get("name") or profile["login"],
        email=profile.get("email"),
        image=profile.get("avatar_url"),
    )


def _google_profile(profile: Mapping[str, Any]) -> UserProfile:
    return UserProfile(
        id=str(profile["sub"]),
        name=profile.get("name") or "",
        email=profile.get("email"),
        image=profile.get("picture"),
    )


def github_provider(
    *,
    client_id: str,
    client_secret: str,
    scope: tuple[str, ...] | None = None,
) -> OAuthProviderConfig:
    return OAuthProviderConfig(
        id="github",
        label="Github",
        client_id=client_id,
        client_secret=client_secret,
        scope=scope or ("read:user", "user:email"),
        authorization_url="https://github.com/login/oauth/authorize",
        token_url="https://github.com/login/oauth/access_token",  # noqa: S106 -- URL, not a password
        userinfo_url="https://api.github.com/user",
        profile=_github_profile,
    )


def google_provider(
    *,
    client_id: str,
    client_secret: str,
    scope: tuple[str, ...] | None = None,
) -> OAuthProviderConfig:
    return OAuthProviderConfig(
        id="google",
        label="Google",
        client_id=client_id,
        client_secret=client_secret,
        scope=scope or ("openid", "email", "profile"),
        authorization_url="https://accounts.google.com/o/oauth2/v2/auth",
        token_url="https://oauth2.googleapis.com/token",  # noqa: S106 -- URL, not a password
        userinfo_url="https://openidconnect.googleapis.com/v1/userinfo",
        profile=_google_profile,
    )


def claims_profile_mapper(
    *,
    id_field: str = "sub",
    name_field: str = "name",
    email_field: str = "email",
    image_field: str = "picture",
) -> ProfileMapper:
    """Build a mapper for providers whose user-info payload is a flat claim set."""

    def _map(profile: Mapping[str, Any]) -> UserProfile:
        image = profile.get(image_field)
        return UserProfile(
            id=str(profile[id_field]),
            name=profile.get(name_field) or "",
            email=profile.get(email_field),
            image=str(image) if image else None,
        )

    return _map


def generic_provider(key: str, raw: Mapping[str, Any]) -> OAuthProviderConfig:
    try:
        return OAuthProviderConfig(
            id=raw.get("id", key),
            label=raw.get("label", key),
            client_id=raw["client_id"],
            client_secret=raw["client_secret"],
            scope=tuple(raw.get("scope") or ()),
            authorization_url=raw.get("authorization_url", ""),
            token_url=raw["token_url"],
            userinfo_url=raw["userinfo_url"],
            profile=claims_profile_mapper(
                id_field=raw.get("id_field", "sub"),
                name_field=raw.get("name_field", "name"),
                email_field=raw.get("email_field", "email"),
                image_field=raw.get("image_field", "picture"),
            ),
        )
    except KeyError as exc:
        raise ConfigurationError(f"OAuth provider {key!r} is missing {exc.args[0]!r}.") from exc


def build_registry_from_settings(
    settings: Settings,
    *,
    otp: Mapping[str, OtpProviderConfig] | None = None,
) -> ProviderRegistry:
    oauth: dict[str, OAuthProviderConfig] = {}
    if settings.github_client_id and settings.github_client_secret:
        oauth["github"] = github_provider(
            client_id=settings.github_client_id,
            client_secret=settings.github_client_secret,
        )
    if settings.google_client_id and settings.google_client_secret:
        oauth["google"] = google_provider(
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
        )
    for key, raw in settings.oauth_providers.items():
        if key in oauth:
            raise ConfigurationError(f"OAuth provider {key!r} is configured twice.")
        oauth[key] = generic_provider(key, raw)

    registry = ProviderRegistry(oauth=oauth, otp=otp)
    logger.info(
        "providers: registry_built oauth=%s otp=%s",
        sorted(registry.oauth_keys),
        sorted(registry.otp_keys),
    )
    return registry
