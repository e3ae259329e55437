from __future__ import annotations

from typing import Any, Mapping, Optional

from .constants import ApiErrorCode


class FireAuthError(Exception):
    """Base class for every error raised by pkg_fireauth."""
    pass


# --- Identity service / session errors ------------------------------------


class AuthenticationError(FireAuthError):
    """Raised when a call against the identity service fails."""
    pass


class TransportError(AuthenticationError):
    """Raised when the HTTP request could not be sent or read."""
    pass


class ResponseDecodeError(AuthenticationError):
    """Raised when a response body is not the JSON document we expect."""

    def __init__(self, message: str, body: str) -> None:
        super().__init__(message)
        self.body = body


class ApiError(AuthenticationError):
    """
    Structured error reported by the identity service.

    Carries the HTTP status, the mapped error code and the raw message/body
    so callers can apply their own retry or messaging policy.
    """

    def __init__(
        self,
        *,
        status_code: int,
        error_code: ApiErrorCode,
        message: str,
        body: Mapping[str, Any],
    ) -> None:
        super().__init__(f"Identity service error ({status_code}) {message}")
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.body = body


class InvalidIdentityTokenError(AuthenticationError):
    """Raised when the identity token was rejected as invalid or expired."""

    def __init__(self, message: str = "Invalid identity token") -> None:
        super().__init__(message)


class InvalidDurationError(AuthenticationError, ValueError):
    """Raised when an `expires_in` value is not a non-negative integer string."""
    pass


class UserDataNotFoundError(AuthenticationError):
    """Raised when a lookup response contains no user."""
    pass


class SessionConsumedError(FireAuthError):
    """Raised when a Session is used after an operation already consumed it."""
    pass


# --- OAuth errors ---------------------------------------------------------


class OAuthError(FireAuthError):
    """Raised when a delegated-authorization flow fails."""
    pass


class StateMismatchError(OAuthError):
    """Raised when the redirect state differs from the one sent to the IdP."""

    def __init__(self) -> None:
        super().__init__("CSRF state mismatch")


class ProviderError(OAuthError):
    """Raised with the status code and body an IdP endpoint answered with."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthCodeExchangeFailedError(ProviderError):
    """Raised when the token endpoint refuses an authorization code."""
    pass


class DeviceAuthorizationFailedError(ProviderError):
    """Raised when the device endpoint refuses an authorization request."""
    pass


class DeviceExchangeTokenFailedError(ProviderError):
    """Raised on a terminal provider error while polling for a device token."""
    pass


class PollingTimeoutError(OAuthError):
    """Raised when device-code polling reaches its deadline."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Device authorization not completed within {timeout:.0f}s")
        self.timeout = timeout


class ContinuePolling(OAuthError):
    """Internal signal: the user has not finished authorizing yet."""

    def __init__(self, *, slow_down: bool = False) -> None:
        super().__init__("authorization pending")
        self.slow_down = slow_down


# --- ID token verification errors ----------------------------------------


class VerificationError(FireAuthError):
    """Raised when an ID token cannot be verified."""
    pass


class DecodeTokenHeaderFailedError(VerificationError):
    pass


class InvalidTokenTypeError(VerificationError):
    def __init__(self, typ: Optional[str]) -> None:
        super().__init__(f"Invalid type in ID token header: {typ!r}")
        self.typ = typ


class InvalidAlgorithmError(VerificationError):
    def __init__(self, alg: Optional[str]) -> None:
        super().__init__(f"Invalid algorithm in ID token header: {alg!r}")
        self.alg = alg


class KidNotFoundError(VerificationError):
    def __init__(self) -> None:
        super().__init__("No kid in the ID token header")


class KeySetRequestFailedError(VerificationError):
    pass


class InvalidResponseStatusCodeError(VerificationError):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"Invalid response status code from key set endpoint: {status_code}")
        self.status_code = status_code


class DeserializeResponseJsonFailedError(VerificationError):
    pass


class PublicKeyNotFoundError(VerificationError):
    """
    Raised when the token's kid is not in the current key set.

    The issuer rotates keys frequently; retrying verification later
    usually succeeds.
    """

    def __init__(self, kid: str) -> None:
        super().__init__(f"Public key not found for kid {kid!r}")
        self.kid = kid


class GetDecodingKeyFailedError(VerificationError):
    pass


class DecodeTokenFailedError(VerificationError):
    pass


class TokenExpiredError(VerificationError):
    def __init__(self, exp: int) -> None:
        super().__init__(f"The ID token expired at {exp}")
        self.exp = exp


class TokenIssuedInTheFutureError(VerificationError):
    def __init__(self, iat: int) -> None:
        super().__init__(f"The ID token is issued in the future at {iat}")
        self.iat = iat
