from __future__ import annotations

from authcore.application.dto.auth import SendOtpInput
from authcore.application.ports.otp_verifier_port import OtpVerifierPort
from authcore.domain.entities.provider import ProviderRegistry


class SendOtpUseCase:
    def __init__(self, *, providers: ProviderRegistry, otp_verifier: OtpVerifierPort):
        self._providers = providers
        self._otp_verifier = otp_verifier

    async def execute(self, command: SendOtpInput) -> bool:
        config = self._providers.get_otp(command.provider)
        return await self._otp_verifier.send(provider=config, input=command.input)
