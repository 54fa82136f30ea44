from __future__ import annotations

import pytest

from authcore.application.auth_service import AuthService
from authcore.domain.entities.provider import ProviderRegistry
from authcore.domain.entities.user import RequestMeta, User
from authcore.domain.exceptions import (
    InvalidCodeError,
    UnknownProviderError,
    UnsupportedVerificationTargetError,
    ValidationError,
)
from authcore.infrastructure.clients.otp_verifier import OtpVerifier

from conftest import FakeSmsProvider, make_sms_config


def _service_with_sms(auth_port, oauth_clients, token_service, sms, *, target_field: str = "phone"):
    return AuthService(
        providers=ProviderRegistry(otp={"sms": make_sms_config(sms, target_field=target_field)}),
        auth_port=auth_port,
        oauth_client_factory=oauth_clients,
        otp_verifier=OtpVerifier(),
        token_port=token_service,
    )


@pytest.mark.asyncio
async def test_send_otp_delegates_to_provider(service, sms):
    sent = await service.send_otp(provider="sms", input={"phone": "+15551234"})

    assert sent is True
    assert sms.sent_to == [{"phone": "+15551234"}]


@pytest.mark.asyncio
async def test_send_otp_reports_provider_failure(auth_port, oauth_clients, token_service):
    sms = FakeSmsProvider(sent=False)
    service = _service_with_sms(auth_port, oauth_clients, token_service, sms)

    assert await service.send_otp(provider="sms", input={"phone": "+15551234"}) is False


@pytest.mark.asyncio
async def test_send_otp_unknown_provider(service):
    with pytest.raises(UnknownProviderError):
        await service.send_otp(provider="email", input={"email": "a@example.com"})


@pytest.mark.asyncio
async def test_verify_otp_creates_phone_only_user(service, auth_port, sms):
    token = await service.verify_otp(provider="sms", input={"phone": "+15551234"}, code="000000")

    assert token
    (user,) = auth_port.users.values()
    assert user.name == ""
    assert user.email is None
    assert user.phone == "+15551234"
    assert user.profile_image_url is None
    (session,) = auth_port.sessions.values()
    assert session.user_id == user.id
    assert session.session_token == token
    assert sms.verified == [({"phone": "+15551234"}, "000000")]
    assert auth_port.transactions == 1


@pytest.mark.asyncio
async def test_verify_otp_reuses_user_with_same_phone(service, auth_port):
    auth_port.users["u-1"] = User(
        id="u-1", name="Known", email=None, phone="+15551234", profile_image_url=None
    )

    token = await service.verify_otp(
        provider="sms",
        input={"phone": "+15551234"},
        code="123456",
        meta=RequestMeta(user_agent="app/1.0", ip="198.51.100.2"),
    )

    assert list(auth_port.users) == ["u-1"]
    (session,) = auth_port.sessions.values()
    assert session.user_id == "u-1"
    assert session.session_token == token
    assert session.user_agent == "app/1.0"
    assert auth_port.transactions == 0


@pytest.mark.asyncio
async def test_verify_otp_invalid_code_creates_nothing(auth_port, oauth_clients, token_service):
    service = _service_with_sms(auth_port, oauth_clients, token_service, FakeSmsProvider(valid=False))

    with pytest.raises(InvalidCodeError) as exc_info:
        await service.verify_otp(provider="sms", input={"phone": "+15551234"}, code="999999")

    assert exc_info.value.code == "invalid_code"
    assert auth_port.users == {}
    assert auth_port.sessions == {}


@pytest.mark.asyncio
async def test_verify_otp_rejects_unsupported_target(auth_port, oauth_clients, token_service, sms):
    service = _service_with_sms(auth_port, oauth_clients, token_service, sms, target_field="email")

    with pytest.raises(UnsupportedVerificationTargetError):
        await service.verify_otp(provider="sms", input={"email": "a@example.com"}, code="000000")

    assert auth_port.users == {}


@pytest.mark.asyncio
async def test_verify_otp_requires_target_value(service, auth_port):
    with pytest.raises(ValidationError):
        await service.verify_otp(provider="sms", input={}, code="000000")

    assert auth_port.users == {}


@pytest.mark.asyncio
async def test_verify_otp_unknown_provider(service, sms):
    with pytest.raises(UnknownProviderError):
        await service.verify_otp(provider="whatsapp", input={"phone": "+15551234"}, code="000000")

    assert sms.verified == []
