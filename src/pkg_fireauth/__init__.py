"""
pkg_fireauth

Client-side authentication toolkit for an identity-toolkit style service:
sessions that refresh expired ID tokens and retry once, OAuth 2.0
authorization-code / device-code flows against third-party IdPs, and
offline verification of RS256-signed ID tokens.
"""

__version__ = "0.1.0"

from .domain.constants import ApiErrorCode, DeleteAttribute, Endpoint, ProviderId
from .domain.entities import (
    IdTokenClaims,
    OAuthToken,
    ProvidersForEmail,
    ProviderUserInfo,
    UserData,
    VerifiedEmail,
)
from .domain.exceptions import (
    ApiError,
    AuthenticationError,
    FireAuthError,
    InvalidIdentityTokenError,
    OAuthError,
    PollingTimeoutError,
    SessionConsumedError,
    StateMismatchError,
    TokenExpiredError,
    TransportError,
    VerificationError,
)
from .domain.ports import Clock, SleepFn, Transport, default_clock
from .domain.value_objects import (
    AccessToken,
    ApiKey,
    ExpiresIn,
    IdentityToken,
    IdpPostBody,
    ProjectId,
    RefreshToken,
)
from .settings import FireAuthSettings

from .application.retry import with_retry
from .application.session import Session
from .application.auth_client import AuthClient

from .adapters.identity_toolkit.transport import IdentityToolkitTransport
from .adapters.securetoken.jwt_verifier import IdTokenVerifier, verify_id_token

__all__ = [
    "__version__",
    # domain core
    "ApiErrorCode",
    "DeleteAttribute",
    "Endpoint",
    "ProviderId",
    "IdTokenClaims",
    "OAuthToken",
    "ProvidersForEmail",
    "ProviderUserInfo",
    "UserData",
    "VerifiedEmail",
    "AccessToken",
    "ApiKey",
    "ExpiresIn",
    "IdentityToken",
    "IdpPostBody",
    "ProjectId",
    "RefreshToken",
    "Clock",
    "SleepFn",
    "Transport",
    "default_clock",
    "FireAuthSettings",
    # exceptions
    "FireAuthError",
    "AuthenticationError",
    "TransportError",
    "ApiError",
    "InvalidIdentityTokenError",
    "SessionConsumedError",
    "OAuthError",
    "StateMismatchError",
    "PollingTimeoutError",
    "VerificationError",
    "TokenExpiredError",
    # application
    "with_retry",
    "Session",
    "AuthClient",
    # adapters
    "IdentityToolkitTransport",
    "IdTokenVerifier",
    "verify_id_token",
]
