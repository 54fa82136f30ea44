from __future__ import annotations

import logging
from uuid import uuid4

from authcore.application.dto.auth import IssuedSessionOutput, VerifyOtpInput
from authcore.application.ports.auth_port import AuthPort
from authcore.application.ports.otp_verifier_port import OtpVerifierPort
from authcore.application.ports.session_token_port import SessionTokenPort
from authcore.domain.entities.provider import ProviderRegistry
from authcore.domain.exceptions import InvalidCodeError, ValidationError

from .auth_common import issue_session


logger = logging.getLogger(__name__)


class VerifyOtpUseCase:
    def __init__(
        self,
        *,
        providers: ProviderRegistry,
        auth_port: AuthPort,
        otp_verifier: OtpVerifierPort,
        token_port: SessionTokenPort,
    ):
        self._providers = providers
        self._auth_port = auth_port
        self._otp_verifier = otp_verifier
        self._token_port = token_port

    async def execute(self, command: VerifyOtpInput) -> IssuedSessionOutput:
        config = self._providers.get_otp(command.provider)

        valid = await self._otp_verifier.verify(provider=config, input=command.input, code=command.code)
        if not valid:
            raise InvalidCodeError("Invalid code.")

        target_field = self._otp_verifier.ensure_supported_target(provider=config)
        phone = command.input.get(target_field)
        if not isinstance(phone, str) or not phone.strip():
            raise ValidationError(f"Input is missing the {target_field!r} field.")
        phone = phone.strip()

        user = await self._auth_port.get_user_from_phone(phone=phone)
        if user is not None:
            session = await issue_session(
                user_id=user.id,
                auth_port=self._auth_port,
                token_port=self._token_port,
                user_agent=command.user_agent,
                ip=command.ip,
            )
            logger.info(
                "verify_otp: session_issued provider=%s user_id=%s new_user=false",
                command.provider,
                user.id,
            )
            return IssuedSessionOutput(
                session_id=session.id,
                session_token=session.session_token,
                user_id=user.id,
                created_user=False,
            )

        async def _tx(auth_port: AuthPort) -> IssuedSessionOutput:
            created = await auth_port.create_user(
                user_id=str(uuid4()),
                name="",
                email=None,
                phone=phone,
                profile_image_url=None,
            )
            session = await issue_session(
                user_id=created.id,
                auth_port=auth_port,
                token_port=self._token_port,
                user_agent=command.user_agent,
                ip=command.ip,
            )
            return IssuedSessionOutput(
                session_id=session.id,
                session_token=session.session_token,
                user_id=created.id,
                created_user=True,
            )

        output = await self._auth_port.run_in_transaction(_tx)
        logger.info(
            "verify_otp: session_issued provider=%s user_id=%s new_user=true",
            command.provider,
            output.user_id,
        )
        return output
