# src/pkg_fireauth/domain/value_objects.py

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping
from urllib.parse import urlencode

from ..log_utils import mask_secret
from .constants import ProviderId
from .exceptions import InvalidDurationError

_DIGITS = re.compile(r"[0-9]+")


# --- Project identity -----------------------------------------------------


@dataclass(frozen=True, slots=True)
class ApiKey:
    """Web API key of the identity project."""
    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("API key must not be empty")

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"ApiKey({mask_secret(self.value)})"


@dataclass(frozen=True, slots=True)
class ProjectId:
    """
    Identity project id.

    Pins both the `aud` claim and the issuer of verified ID tokens.
    """
    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("Project id must not be empty")

    def __str__(self) -> str:
        return self.value


# --- Session credentials --------------------------------------------------


@dataclass(frozen=True, slots=True, repr=False)
class IdentityToken:
    """
    Short-lived bearer token presented on each authenticated call.

    Kept apart from RefreshToken so the two can never be swapped by accident.
    """
    value: str

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"IdentityToken({mask_secret(self.value)})"


@dataclass(frozen=True, slots=True, repr=False)
class RefreshToken:
    """Long-lived token exchanged for a new identity token."""
    value: str

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"RefreshToken({mask_secret(self.value)})"


@dataclass(frozen=True, slots=True)
class ExpiresIn:
    """
    Lifetime of an identity token, in whole seconds.

    The identity service sends it as a decimal string; use `parse`.
    """
    seconds: int

    @classmethod
    def parse(cls, raw: str) -> ExpiresIn:
        text = str(raw)
        if not _DIGITS.fullmatch(text):
            raise InvalidDurationError(f"Invalid expires_in value: {raw!r}")
        return cls(int(text))

    def as_timedelta(self) -> timedelta:
        return timedelta(seconds=self.seconds)

    def __int__(self) -> int:
        return self.seconds


# --- OAuth exchange values ------------------------------------------------


@dataclass(frozen=True, slots=True, repr=False)
class AuthorizationCode:
    """Code returned by the IdP on redirect; redeemable once."""
    value: str

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"AuthorizationCode({mask_secret(self.value)})"


@dataclass(frozen=True, slots=True)
class CsrfState:
    """Opaque value round-tripped through the authorization redirect."""
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True, repr=False)
class PkceVerifier:
    """PKCE code verifier; only its challenge ever leaves this process."""
    value: str

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return "PkceVerifier(****)"


@dataclass(frozen=True, slots=True, repr=False)
class AccessToken:
    """Access token issued by a third-party IdP."""
    value: str

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"AccessToken({mask_secret(self.value)})"


@dataclass(frozen=True, slots=True)
class DeviceUserCode:
    """Code the user types on the second device."""
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class VerificationUri:
    """Page where the user enters the device user code."""
    value: str

    def __str__(self) -> str:
        return self.value


# --- Federated sign-in ----------------------------------------------------


@dataclass(frozen=True, slots=True, repr=False)
class IdpPostBody:
    """
    Credential of a third-party IdP, as posted to `accounts:signInWithIdp`.

    Rendered as a query string: ``access_token=...&providerId=google.com``.
    """
    provider_id: ProviderId
    credentials: tuple[tuple[str, str], ...]

    @classmethod
    def create(cls, provider_id: ProviderId, credentials: Mapping[str, str]) -> IdpPostBody:
        if not credentials:
            raise ValueError("IdP credentials must not be empty")
        return cls(provider_id, tuple(sorted(credentials.items())))

    @classmethod
    def from_access_token(cls, provider_id: ProviderId, access_token: str) -> IdpPostBody:
        return cls.create(provider_id, {"access_token": access_token})

    def query(self) -> str:
        return urlencode([*self.credentials, ("providerId", self.provider_id.value)])

    def __str__(self) -> str:
        return self.query()

    def __repr__(self) -> str:
        keys = ", ".join(k for k, _ in self.credentials)
        return f"IdpPostBody({self.provider_id.value}, [{keys}])"
