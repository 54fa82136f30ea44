from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from authcore.domain.entities.provider import OtpProviderConfig


class OtpVerifierPort(Protocol):
    async def send(self, *, provider: OtpProviderConfig, input: Mapping[str, Any]) -> bool:
        ...

    async def verify(self, *, provider: OtpProviderConfig, input: Mapping[str, Any], code: str) -> bool:
        ...

    def ensure_supported_target(self, *, provider: OtpProviderConfig) -> str:
        ...
