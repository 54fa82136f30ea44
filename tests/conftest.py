from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime

import pytest

from authcore.application.auth_service import AuthService
from authcore.domain.entities.oauth import OAuthToken, TokenSet
from authcore.domain.entities.provider import (
    OAuthProviderConfig,
    OtpProviderConfig,
    ProviderRegistry,
    UserProfile,
)
from authcore.domain.entities.user import Account, Session, User
from authcore.domain.exceptions import (
    AccountAlreadyLinkedError,
    MissingAccessTokenError,
    UserAlreadyExistsError,
)
from authcore.infrastructure.clients.otp_verifier import OtpVerifier
from authcore.infrastructure.security.session_token_service import SessionTokenService


class FakeAuthPort:
    """In-memory AuthPort that enforces the same uniqueness rules as the SQL adapter.

    Every method yields to the event loop first so concurrent flows interleave.
    """

    def __init__(self):
        self.users: dict[str, User] = {}
        self.accounts: dict[str, Account] = {}
        self.sessions: dict[str, Session] = {}
        self.transactions = 0
        self.rollbacks = 0
        self.touch_calls = 0

    async def run_in_transaction(self, fn):
        self.transactions += 1
        tx = _FakeTransaction(self)
        try:
            return await fn(tx)
        except Exception:
            tx.rollback()
            self.rollbacks += 1
            raise

    async def get_user_from_id(self, *, user_id: str) -> User | None:
        await asyncio.sleep(0)
        return self.users.get(user_id)

    async def get_user_from_email(self, *, email: str) -> User | None:
        await asyncio.sleep(0)
        for user in self.users.values():
            if user.email is not None and user.email.lower() == email.lower():
                return user
        return None

    async def get_user_from_phone(self, *, phone: str) -> User | None:
        await asyncio.sleep(0)
        for user in self.users.values():
            if user.phone == phone:
                return user
        return None

    async def create_user(
        self,
        *,
        user_id: str,
        name: str,
        email: str | None,
        phone: str | None,
        profile_image_url: str | None,
    ) -> User:
        await asyncio.sleep(0)
        for user in self.users.values():
            if email is not None and user.email == email:
                raise UserAlreadyExistsError("email taken")
            if phone is not None and user.phone == phone:
                raise UserAlreadyExistsError("phone taken")
        user = User(id=user_id, name=name, email=email, phone=phone, profile_image_url=profile_image_url)
        self.users[user.id] = user
        return user

    async def create_account(
        self,
        *,
        account_id: str,
        user_id: str,
        provider: str,
        provider_account_id: str,
        access_token: str | None,
        refresh_token: str | None,
        scope: str | None,
        expires_at: int | None,
        token_type: str | None,
        created_at: datetime,
    ) -> Account:
        await asyncio.sleep(0)
        for account in self.accounts.values():
            if account.provider == provider and account.provider_account_id == provider_account_id:
                raise AccountAlreadyLinkedError("already linked")
        account = Account(
            id=account_id,
            user_id=user_id,
            provider=provider,
            provider_account_id=provider_account_id,
            access_token=access_token,
            refresh_token=refresh_token,
            scope=scope,
            expires_at=expires_at,
            token_type=token_type,
            created_at=created_at,
        )
        self.accounts[account.id] = account
        return account

    async def get_account_from_provider_account_id(self, *, provider: str, provider_account_id: str):
        await asyncio.sleep(0)
        for account in self.accounts.values():
            if account.provider == provider and account.provider_account_id == provider_account_id:
                return account
        return None

    async def get_account_for_provider_by_user_id(self, *, user_id: str, provider: str):
        await asyncio.sleep(0)
        for account in self.accounts.values():
            if account.user_id == user_id and account.provider == provider:
                return account
        return None

    async def update_account_tokens(
        self,
        *,
        account_id: str,
        access_token: str | None,
        refresh_token: str | None,
        scope: str | None,
        expires_at: int | None,
    ) -> None:
        await asyncio.sleep(0)
        account = self.accounts[account_id]
        self.accounts[account_id] = replace(
            account,
            access_token=access_token,
            refresh_token=refresh_token,
            scope=scope,
            expires_at=expires_at,
        )

    async def create_session(
        self,
        *,
        session_id: str,
        user_id: str,
        session_token: str,
        expires_at: datetime,
        created_at: datetime,
        user_agent: str | None,
        ip: str | None,
    ) -> Session:
        await asyncio.sleep(0)
        session = Session(
            id=session_id,
            user_id=user_id,
            session_token=session_token,
            expires_at=expires_at,
            created_at=created_at,
            last_used_at=None,
            revoked_at=None,
            user_agent=user_agent,
            ip=ip,
        )
        self.sessions[session.id] = session
        return session

    async def get_session_from_token_and_touch(self, *, session_token: str, now: datetime):
        self.touch_calls += 1
        for session in self.sessions.values():
            if session.session_token == session_token and session.revoked_at is None:
                touched = replace(session, last_used_at=now)
                self.sessions[session.id] = touched
                return touched
        return None

    async def get_sessions_for_user(self, *, user_id: str) -> list[Session]:
        await asyncio.sleep(0)
        return [
            session
            for session in self.sessions.values()
            if session.user_id == user_id and session.revoked_at is None
        ]

    async def get_session_for_user_from_id(self, *, user_id: str, session_id: str):
        await asyncio.sleep(0)
        session = self.sessions.get(session_id)
        if session is None or session.user_id != user_id:
            return None
        return session

    async def revoke_session(self, *, session_id: str, revoked_at: datetime) -> None:
        await asyncio.sleep(0)
        session = self.sessions.get(session_id)
        if session is not None and session.revoked_at is None:
            self.sessions[session_id] = replace(session, revoked_at=revoked_at)

    async def revoke_all_from_user(self, *, user_id: str, revoked_at: datetime) -> None:
        await asyncio.sleep(0)
        for session_id, session in list(self.sessions.items()):
            if session.user_id == user_id and session.revoked_at is None:
                self.sessions[session_id] = replace(session, revoked_at=revoked_at)

    def active_sessions(self) -> list[Session]:
        return [session for session in self.sessions.values() if session.revoked_at is None]


class _FakeTransaction:
    def __init__(self, port: FakeAuthPort):
        self._port = port
        self._created: list[tuple[str, str]] = []

    def __getattr__(self, name):
        return getattr(self._port, name)

    async def run_in_transaction(self, fn):
        return await fn(self)

    async def create_user(self, **kwargs) -> User:
        user = await self._port.create_user(**kwargs)
        self._created.append(("users", user.id))
        return user

    async def create_account(self, **kwargs) -> Account:
        account = await self._port.create_account(**kwargs)
        self._created.append(("accounts", account.id))
        return account

    async def create_session(self, **kwargs) -> Session:
        session = await self._port.create_session(**kwargs)
        self._created.append(("sessions", session.id))
        return session

    def rollback(self) -> None:
        for table, key in reversed(self._created):
            getattr(self._port, table).pop(key, None)


class FakeOAuthClient:
    def __init__(self, config: OAuthProviderConfig, factory: FakeOAuthClientFactory):
        self._config = config
        self._factory = factory

    async def exchange_code(self, *, code: str, redirect_uri: str) -> OAuthToken:
        await asyncio.sleep(0)
        self._factory.exchanged.append((code, redirect_uri))
        return OAuthToken(config=self._config, token=self._factory.token)

    async def refresh(self, *, refresh_token: str) -> OAuthToken:
        await asyncio.sleep(0)
        self._factory.refreshed.append(refresh_token)
        return OAuthToken(config=self._config, token=self._factory.refreshed_token)

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
        await asyncio.sleep(0)
        return self._factory.profile


class FakeOAuthClientFactory:
    def __init__(self):
        self.profile = UserProfile(
            id="gh-42",
            name="Octo Cat",
            email="octo@example.com",
            image="https://avatars.example.com/42",
        )
        self.token = TokenSet(
            access_token="access-1",
            refresh_token="refresh-1",
            scope="read:user",
            expires_at=2_000_000_000,
            token_type="bearer",
        )
        self.refreshed_token = TokenSet(
            access_token="access-2",
            refresh_token=None,
            scope=None,
            expires_at=2_100_000_000,
            token_type="bearer",
        )
        self.exchanged: list[tuple[str, str]] = []
        self.refreshed: list[str] = []

    def __call__(self, config: OAuthProviderConfig) -> FakeOAuthClient:
        return FakeOAuthClient(config, self)


class FakeSmsProvider:
    def __init__(self, *, valid: bool = True, sent: bool = True):
        self.valid = valid
        self.sent = sent
        self.sent_to: list[dict] = []
        self.verified: list[tuple[dict, str]] = []

    async def send_code(self, input) -> bool:
        self.sent_to.append(dict(input))
        return self.sent

    async def verify_code(self, input, code: str) -> bool:
        self.verified.append((dict(input), code))
        return self.valid


def _unused_profile(_raw) -> UserProfile:
    raise AssertionError("profile mapping is handled by the fake client")


def make_github_config() -> OAuthProviderConfig:
    return OAuthProviderConfig(
        id="github",
        label="Github",
        client_id="client-id",
        client_secret="client-secret",
        scope=("read:user", "user:email"),
        authorization_url="https://github.com/login/oauth/authorize",
        token_url="https://github.com/login/oauth/access_token",
        userinfo_url="https://api.github.com/user",
        profile=_unused_profile,
    )


def make_sms_config(sms: FakeSmsProvider, *, target_field: str = "phone") -> OtpProviderConfig:
    return OtpProviderConfig(
        id="sms",
        label="SMS",
        target_field=target_field,
        send_code=sms.send_code,
        verify_code=sms.verify_code,
    )


@pytest.fixture
def auth_port() -> FakeAuthPort:
    return FakeAuthPort()


@pytest.fixture
def oauth_clients() -> FakeOAuthClientFactory:
    return FakeOAuthClientFactory()


@pytest.fixture
def sms() -> FakeSmsProvider:
    return FakeSmsProvider()


@pytest.fixture
def providers(sms: FakeSmsProvider) -> ProviderRegistry:
    return ProviderRegistry(
        oauth={"github": make_github_config()},
        otp={"sms": make_sms_config(sms)},
    )


@pytest.fixture
def token_service() -> SessionTokenService:
    return SessionTokenService(ttl_days=3650)


@pytest.fixture
def service(
    providers: ProviderRegistry,
    auth_port: FakeAuthPort,
    oauth_clients: FakeOAuthClientFactory,
    token_service: SessionTokenService,
) -> AuthService:
    return AuthService(
        providers=providers,
        auth_port=auth_port,
        oauth_client_factory=oauth_clients,
        otp_verifier=OtpVerifier(),
        token_port=token_service,
    )
