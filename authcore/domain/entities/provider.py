from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal

from authcore.domain.exceptions import ConfigurationError, UnknownProviderError


ProviderType = Literal["oauth", "otp"]

# Contact fields an OTP provider may verify and attach to a user.
SUPPORTED_OTP_TARGETS = ("phone",)


@dataclass(frozen=True)
class UserProfile:
    id: str
    name: str
    email: str | None
    image: str | None = None


ProfileMapper = Callable[[Mapping[str, Any]], UserProfile]
SendCode = Callable[[Mapping[str, Any]], Awaitable[bool]]
VerifyCode = Callable[[Mapping[str, Any], str], Awaitable[bool]]


@dataclass(frozen=True)
class OAuthProviderConfig:
    id: str
    label: str
    client_id: str
    client_secret: str = field(repr=False)
    scope: tuple[str, ...]
    authorization_url: str
    token_url: str
    userinfo_url: str
    profile: ProfileMapper
    type: ProviderType = "oauth"

    def public_info(self) -> dict:
        return {
            "type": self.type,
            "id": self.id,
            "label": self.label,
            "client_id": self.client_id,
            "scope": list(self.scope),
            "authorization_url": self.authorization_url,
            "token_url": self.token_url,
        }


@dataclass(frozen=True)
class OtpProviderConfig:
    id: str
    label: str
    target_field: str
    send_code: SendCode
    verify_code: VerifyCode
    type: ProviderType = "otp"

    def public_info(self) -> dict:
        return {"type": self.type, "id": self.id, "label": self.label}


class ProviderRegistry:
    """Immutable set of configured providers, keyed by the name callers use.

    Built once at startup and passed to every component that needs it.
    Lookups for keys outside the configured set raise UnknownProviderError.
    """

    def __init__(
        self,
        *,
        oauth: Mapping[str, OAuthProviderConfig] | None = None,
        otp: Mapping[str, OtpProviderConfig] | None = None,
    ):
        oauth = dict(oauth or {})
        otp = dict(otp or {})
        for key, config in oauth.items():
            _validate_oauth(key, config)
        for key, config in otp.items():
            _validate_otp(key, config)
        self._oauth = MappingProxyType(oauth)
        self._otp = MappingProxyType(otp)

    @property
    def oauth_keys(self) -> frozenset[str]:
        return frozenset(self._oauth)

    @property
    def otp_keys(self) -> frozenset[str]:
        return frozenset(self._otp)

    def get_oauth(self, key: str) -> OAuthProviderConfig:
        config = self._oauth.get(key)
        if config is None:
            raise UnknownProviderError(f"OAuth provider {key!r} is not configured.")
        return config

    def get_otp(self, key: str) -> OtpProviderConfig:
        config = self._otp.get(key)
        if config is None:
            raise UnknownProviderError(f"OTP provider {key!r} is not configured.")
        return config

    def public_config(self) -> dict:
        return {
            "oauth": {key: config.public_info() for key, config in self._oauth.items()},
            "otp": {key: config.public_info() for key, config in self._otp.items()},
        }


def _validate_oauth(key: str, config: OAuthProviderConfig) -> None:
    if not key:
        raise ConfigurationError("OAuth provider key must not be empty.")
    missing = [
        name
        for name in ("client_id", "client_secret", "token_url", "userinfo_url")
        if not getattr(config, name)
    ]
    if missing:
        raise ConfigurationError(f"OAuth provider {key!r} is missing: {', '.join(missing)}.")
    if not callable(config.profile):
        raise ConfigurationError(f"OAuth provider {key!r} has no profile mapper.")


def _validate_otp(key: str, config: OtpProviderConfig) -> None:
    if not key:
        raise ConfigurationError("OTP provider key must not be empty.")
    if not callable(config.send_code) or not callable(config.verify_code):
        raise ConfigurationError(f"OTP provider {key!r} needs send_code and verify_code callables.")
