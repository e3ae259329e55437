"""
Provider factories: each returns a generic flow client pre-configured
with the provider's fixed endpoints and PKCE policy.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

import httpx

from ..domain.ports import Clock, default_clock
from .auth_code import AuthorizationCodeClient
from .config import AuthorizationCodeConfig, DeviceCodeConfig, PkceMethod
from .device_code import DeviceCodeClient
from .facebook_device import FacebookDeviceCodeClient

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://www.googleapis.com/oauth2/v4/token"
GOOGLE_DEVICE_URL = "https://oauth2.googleapis.com/device/code"

FACEBOOK_AUTHORIZE_URL = "https://www.facebook.com/v18.0/dialog/oauth"
FACEBOOK_TOKEN_URL = "https://graph.facebook.com/v18.0/oauth/access_token"

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"

TWITTER_AUTHORIZE_URL = "https://twitter.com/i/oauth2/authorize"
TWITTER_TOKEN_URL = "https://api.twitter.com/2/oauth2/token"

MICROSOFT_BASE_URL = "https://login.microsoftonline.com"


class MicrosoftIssuer(Enum):
    """Audience of the Microsoft identity platform endpoint."""
    COMMON = "common"
    ORGANIZATIONS = "organizations"
    CONSUMERS = "consumers"


def microsoft_issuer_segment(issuer: Union[MicrosoftIssuer, str]) -> str:
    """A MicrosoftIssuer, or a tenant id / domain string."""
    if isinstance(issuer, MicrosoftIssuer):
        return issuer.value
    tenant = issuer.strip()
    if not tenant or "/" in tenant:
        raise ValueError(f"Invalid Microsoft tenant: {issuer!r}")
    return tenant


def google_auth_code(
    client_id: str,
    client_secret: str,
    redirect_url: str,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AuthorizationCodeClient:
    config = AuthorizationCodeConfig(
        client_id=client_id,
        client_secret=client_secret,
        authorize_url=GOOGLE_AUTHORIZE_URL,
        token_url=GOOGLE_TOKEN_URL,
        redirect_url=redirect_url,
        pkce_method=PkceMethod.S256,
    )
    return AuthorizationCodeClient(config, http_client=http_client)


def google_device_code(
    client_id: str,
    client_secret: str,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
    clock: Clock = default_clock,
) -> DeviceCodeClient:
    config = DeviceCodeConfig(
        client_id=client_id,
        client_secret=client_secret,
        device_authorization_url=GOOGLE_DEVICE_URL,
        token_url=GOOGLE_TOKEN_URL,
    )
    return DeviceCodeClient(config, http_client=http_client, clock=clock)


def facebook_auth_code(
    client_id: str,
    redirect_url: str,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AuthorizationCodeClient:
    """Public client; Facebook's manual login flow relies on PKCE only."""
    config = AuthorizationCodeConfig(
        client_id=client_id,
        authorize_url=FACEBOOK_AUTHORIZE_URL,
        token_url=FACEBOOK_TOKEN_URL,
        redirect_url=redirect_url,
        pkce_method=PkceMethod.S256,
    )
    return AuthorizationCodeClient(config, http_client=http_client)


def facebook_device_code(
    app_id: str,
    client_token: str,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
    clock: Clock = default_clock,
) -> FacebookDeviceCodeClient:
    return FacebookDeviceCodeClient(app_id, client_token, http_client=http_client, clock=clock)


def github_auth_code(
    client_id: str,
    client_secret: str,
    redirect_url: str,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AuthorizationCodeClient:
    """GitHub OAuth apps do not support PKCE."""
    config = AuthorizationCodeConfig(
        client_id=client_id,
        client_secret=client_secret,
        authorize_url=GITHUB_AUTHORIZE_URL,
        token_url=GITHUB_TOKEN_URL,
        redirect_url=redirect_url,
        pkce_method=PkceMethod.NOT_SUPPORTED,
    )
    return AuthorizationCodeClient(config, http_client=http_client)


def twitter_auth_code(
    client_id: str,
    redirect_url: str,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AuthorizationCodeClient:
    """OAuth 2.0 public client; Twitter requires PKCE for it."""
    config = AuthorizationCodeConfig(
        client_id=client_id,
        authorize_url=TWITTER_AUTHORIZE_URL,
        token_url=TWITTER_TOKEN_URL,
        redirect_url=redirect_url,
        pkce_method=PkceMethod.S256,
    )
    return AuthorizationCodeClient(config, http_client=http_client)


def microsoft_auth_code(
    client_id: str,
    redirect_url: str,
    *,
    issuer: Union[MicrosoftIssuer, str] = MicrosoftIssuer.COMMON,
    client_secret: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AuthorizationCodeClient:
    segment = microsoft_issuer_segment(issuer)
    config = AuthorizationCodeConfig(
        client_id=client_id,
        client_secret=client_secret,
        authorize_url=f"{MICROSOFT_BASE_URL}/{segment}/oauth2/v2.0/authorize",
        token_url=f"{MICROSOFT_BASE_URL}/{segment}/oauth2/v2.0/token",
        redirect_url=redirect_url,
        pkce_method=PkceMethod.S256,
    )
    return AuthorizationCodeClient(config, http_client=http_client)
