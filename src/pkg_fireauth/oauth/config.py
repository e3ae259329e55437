from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..log_utils import mask_secret


class PkceMethod(Enum):
    """PKCE policy of an identity provider."""
    S256 = "S256"
    NOT_SUPPORTED = "not_supported"

    @property
    def enabled(self) -> bool:
        return self is not PkceMethod.NOT_SUPPORTED


@dataclass(frozen=True, slots=True)
class AuthorizationCodeConfig:
    """
    Endpoints and credentials of one IdP for the authorization-code flow.

    `client_secret` is None for public clients. Setting `pkce_method` to
    S256 for a provider that does not support PKCE is caller error and is
    not detected here.
    """
    client_id: str
    authorize_url: str
    token_url: str
    redirect_url: str
    client_secret: Optional[str] = None
    pkce_method: PkceMethod = PkceMethod.S256

    def __post_init__(self) -> None:
        if not self.client_id:
            raise ValueError("client_id must not be empty")
        if not self.authorize_url or not self.token_url:
            raise ValueError("authorize_url and token_url are required")
        if not self.redirect_url:
            raise ValueError("redirect_url must not be empty")

    def __repr__(self) -> str:
        return (
            f"AuthorizationCodeConfig(client_id={self.client_id!r}, "
            f"authorize_url={self.authorize_url!r}, token_url={self.token_url!r}, "
            f"redirect_url={self.redirect_url!r}, "
            f"client_secret={mask_secret(self.client_secret)}, "
            f"pkce_method={self.pkce_method.value})"
        )


@dataclass(frozen=True, slots=True)
class DeviceCodeConfig:
    """Endpoints and credentials of one IdP for the device-code flow."""
    client_id: str
    device_authorization_url: str
    token_url: str
    client_secret: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.client_id:
            raise ValueError("client_id must not be empty")
        if not self.device_authorization_url or not self.token_url:
            raise ValueError("device_authorization_url and token_url are required")

    def __repr__(self) -> str:
        return (
            f"DeviceCodeConfig(client_id={self.client_id!r}, "
            f"device_authorization_url={self.device_authorization_url!r}, "
            f"token_url={self.token_url!r}, "
            f"client_secret={mask_secret(self.client_secret)})"
        )
