from __future__ import annotations


class DomainError(Exception):
    """Base for authentication domain errors."""

    code = "auth_error"
    retryable = False


class ConfigurationError(DomainError):
    """Provider or core configuration is missing or invalid."""

    code = "configuration_error"


class UnknownProviderError(ConfigurationError):
    """Requested provider key is not configured."""

    code = "unknown_provider"


class UpstreamAuthError(DomainError):
    """OAuth token or profile endpoint failed."""

    code = "upstream_auth_error"
    retryable = True


class ValidationError(DomainError):
    """Request input was rejected."""

    code = "validation_error"


class InvalidCodeError(ValidationError):
    code = "invalid_code"


class UnsupportedVerificationTargetError(ValidationError):
    code = "unsupported_verification_target"


class ConflictError(DomainError):
    """Identity is already bound elsewhere; never merged silently."""

    code = "conflict"


class EmailAlreadyLinkedError(ConflictError):
    code = "email_already_linked"


class AccountAlreadyLinkedError(ConflictError):
    """(provider, provider_account_id) was linked by a concurrent request."""

    code = "account_already_linked"
    retryable = True


class UserAlreadyExistsError(ConflictError):
    code = "user_already_exists"


class NotFoundError(DomainError):
    code = "not_found"


class SessionNotFoundError(NotFoundError):
    code = "session_not_found"


class NoLinkedAccountError(NotFoundError):
    code = "no_linked_account"


class MissingAccessTokenError(NotFoundError):
    code = "missing_access_token"


class UnauthenticatedError(DomainError):
    """No valid session context for an authenticated operation."""

    code = "unauthenticated"
