from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, List, Mapping, Optional

from .constants import ProviderId
from .value_objects import AccessToken, IdpPostBody, RefreshToken


@dataclass(frozen=True, slots=True)
class OAuthToken:
    """
    Result of a delegated-authorization flow, independent of the IdP.
    """
    access_token: AccessToken
    refresh_token: Optional[RefreshToken] = None
    expires_in: Optional[timedelta] = None

    def create_idp_post_body(self, provider_id: ProviderId) -> IdpPostBody:
        """Wrap the access token for sign-in / linking on the identity service."""
        return IdpPostBody.from_access_token(provider_id, self.access_token.value)


@dataclass(frozen=True, slots=True)
class IdTokenClaims:
    """
    Claims of a verified ID token. All six are required.
    """
    exp: int
    iat: int
    aud: str
    iss: str
    sub: str
    auth_time: int

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> IdTokenClaims:
        """
        Raises:
            KeyError, TypeError, ValueError on a missing or mistyped claim.
        """
        return cls(
            exp=_as_int(payload["exp"]),
            iat=_as_int(payload["iat"]),
            aud=_as_str(payload["aud"]),
            iss=_as_str(payload["iss"]),
            sub=_as_str(payload["sub"]),
            auth_time=_as_int(payload["auth_time"]),
        )


def _as_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected a numeric date, got {type(value).__name__}")
    return int(value)


def _as_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    return value


@dataclass(slots=True)
class ProviderUserInfo:
    """One federated identity linked to the account."""
    provider_id: str
    federated_id: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    email: Optional[str] = None
    raw_id: Optional[str] = None
    screen_name: Optional[str] = None

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> ProviderUserInfo:
        return cls(
            provider_id=data.get("providerId", ""),
            federated_id=data.get("federatedId"),
            display_name=data.get("displayName"),
            photo_url=data.get("photoUrl"),
            email=data.get("email"),
            raw_id=data.get("rawId"),
            screen_name=data.get("screenName"),
        )


@dataclass(slots=True)
class UserData:
    """
    Account data returned by `accounts:lookup`.

    Timestamps are kept as the service sends them (epoch milliseconds as
    strings).
    """
    local_id: str
    email: Optional[str] = None
    email_verified: bool = False
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    provider_user_info: List[ProviderUserInfo] = field(default_factory=list)
    password_hash: Optional[str] = None
    password_updated_at: Optional[float] = None
    valid_since: Optional[str] = None
    disabled: bool = False
    last_login_at: Optional[str] = None
    created_at: Optional[str] = None
    last_refresh_at: Optional[str] = None
    custom_auth: bool = False

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> UserData:
        return cls(
            local_id=data.get("localId", ""),
            email=data.get("email"),
            email_verified=bool(data.get("emailVerified") or False),
            display_name=data.get("displayName"),
            photo_url=data.get("photoUrl"),
            provider_user_info=[
                ProviderUserInfo.from_response(p) for p in data.get("providerUserInfo") or []
            ],
            password_hash=data.get("passwordHash"),
            password_updated_at=data.get("passwordUpdatedAt"),
            valid_since=data.get("validSince"),
            disabled=bool(data.get("disabled") or False),
            last_login_at=data.get("lastLoginAt"),
            created_at=data.get("createdAt"),
            last_refresh_at=data.get("lastRefreshAt"),
            custom_auth=bool(data.get("customAuth") or False),
        )

    @property
    def provider_ids(self) -> set[str]:
        return {p.provider_id for p in self.provider_user_info}


@dataclass(frozen=True, slots=True)
class ProvidersForEmail:
    """Result of `accounts:createAuthUri` for an email identifier."""
    all_providers: tuple[str, ...] = ()
    registered: bool = False

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> ProvidersForEmail:
        return cls(
            all_providers=tuple(data.get("allProviders") or ()),
            registered=bool(data.get("registered") or False),
        )


@dataclass(frozen=True, slots=True)
class VerifiedEmail:
    """Account state returned when an email verification code is applied."""
    email: str
    email_verified: bool = False
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    provider_user_info: tuple[ProviderUserInfo, ...] = ()

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> VerifiedEmail:
        return cls(
            email=data["email"],
            email_verified=bool(data.get("emailVerified") or False),
            display_name=data.get("displayName"),
            photo_url=data.get("photoUrl"),
            provider_user_info=tuple(
                ProviderUserInfo.from_response(p) for p in data.get("providerUserInfo") or ()
            ),
        )
