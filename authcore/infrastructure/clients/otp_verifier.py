from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from authcore.application.ports.otp_verifier_port import OtpVerifierPort
from authcore.domain.entities.provider import SUPPORTED_OTP_TARGETS, OtpProviderConfig
from authcore.domain.exceptions import UnsupportedVerificationTargetError


logger = logging.getLogger(__name__)


class OtpVerifier(OtpVerifierPort):
    """Hands code delivery and checking to the provider's own callables.

    Holds no state and does not inspect the code; the provider decides.
    """

    async def send(self, *, provider: OtpProviderConfig, input: Mapping[str, Any]) -> bool:
        sent = bool(await provider.send_code(input))
        logger.info("otp_verifier: send provider=%s sent=%s", provider.id, sent)
        return sent

    async def verify(self, *, provider: OtpProviderConfig, input: Mapping[str, Any], code: str) -> bool:
        valid = bool(await provider.verify_code(input, code))
        logger.info("otp_verifier: verify provider=%s valid=%s", provider.id, valid)
        return valid

    def ensure_supported_target(self, *, provider: OtpProviderConfig) -> str:
        if provider.target_field not in SUPPORTED_OTP_TARGETS:
            raise UnsupportedVerificationTargetError(
                f"Unsupported verification target: {provider.target_field!r}."
            )
        return provider.target_field
