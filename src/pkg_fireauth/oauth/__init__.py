"""
Delegated-authorization flows against third-party IdPs.

    from pkg_fireauth.oauth import google_auth_code

    client = google_auth_code(client_id, client_secret, redirect_url)
    session = client.generate_session(["openid", "email"])
    # redirect the user to session.authorize_url, then on callback:
    token = await session.exchange_code_into_token(code, state)
    post_body = token.create_idp_post_body(ProviderId.GOOGLE)
"""
from __future__ import annotations

from .auth_code import AuthorizationCodeClient, AuthorizationCodeSession
from .config import AuthorizationCodeConfig, DeviceCodeConfig, PkceMethod
from .device_code import DeviceCodeClient, DeviceCodeSession
from .facebook_device import FacebookDeviceCodeClient, FacebookDeviceCodeSession
from .pkce import code_challenge_s256, generate_code_verifier, generate_csrf_state
from .providers import (
    MicrosoftIssuer,
    facebook_auth_code,
    facebook_device_code,
    github_auth_code,
    google_auth_code,
    google_device_code,
    microsoft_auth_code,
    twitter_auth_code,
)

__all__ = [
    "AuthorizationCodeClient",
    "AuthorizationCodeConfig",
    "AuthorizationCodeSession",
    "DeviceCodeClient",
    "DeviceCodeConfig",
    "DeviceCodeSession",
    "FacebookDeviceCodeClient",
    "FacebookDeviceCodeSession",
    "MicrosoftIssuer",
    "PkceMethod",
    "code_challenge_s256",
    "facebook_auth_code",
    "facebook_device_code",
    "generate_code_verifier",
    "generate_csrf_state",
    "github_auth_code",
    "google_auth_code",
    "google_device_code",
    "microsoft_auth_code",
    "twitter_auth_code",
]
