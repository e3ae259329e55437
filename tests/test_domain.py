# tests/test_domain.py
from datetime import timedelta

import pytest

from pkg_fireauth.domain.constants import ApiErrorCode, ProviderId
from pkg_fireauth.domain.entities import IdTokenClaims, OAuthToken, ProvidersForEmail, UserData
from pkg_fireauth.domain.exceptions import InvalidDurationError
from pkg_fireauth.domain.value_objects import (
    AccessToken,
    ApiKey,
    ExpiresIn,
    IdentityToken,
    IdpPostBody,
    PkceVerifier,
    ProjectId,
    RefreshToken,
)
from pkg_fireauth.log_utils import mask_secret


def test_expires_in_parse():
    assert ExpiresIn.parse("3600").seconds == 3600
    assert ExpiresIn.parse("3600").as_timedelta() == timedelta(hours=1)
    assert int(ExpiresIn.parse("0")) == 0

    for raw in ("abc", "-1", "", "1.5", " 60"):
        with pytest.raises(InvalidDurationError):
            ExpiresIn.parse(raw)


def test_invalid_duration_is_a_value_error():
    with pytest.raises(ValueError):
        ExpiresIn.parse("soon")


def test_tokens_are_distinct_types_and_compare_by_content():
    assert IdentityToken("abc") == IdentityToken("abc")
    assert IdentityToken("abc") != RefreshToken("abc")
    assert hash(RefreshToken("r1")) == hash(RefreshToken("r1"))
    assert str(AccessToken("xyz")) == "xyz"


def test_secret_values_are_masked_in_repr():
    token = IdentityToken("eyJhbGciOiJSUzI1NiJ9.payload.sig")
    assert "payload" not in repr(token)
    assert repr(token).startswith("IdentityToken(eyJhbG")
    assert repr(PkceVerifier("v" * 64)) == "PkceVerifier(****)"
    assert "secret-key-value" not in repr(ApiKey("secret-key-value"))


def test_empty_project_identity_is_rejected():
    with pytest.raises(ValueError):
        ApiKey("")
    with pytest.raises(ValueError):
        ProjectId("")
    assert str(ProjectId("my-project")) == "my-project"


def test_mask_secret():
    assert mask_secret(None) == "<empty>"
    assert mask_secret("") == "<empty>"
    assert mask_secret("abc") == "***"
    assert mask_secret("abcdefghij") == "abcdef****"


# --- error codes ---


def test_api_error_code_from_message():
    assert ApiErrorCode.from_message("INVALID_ID_TOKEN") is ApiErrorCode.INVALID_ID_TOKEN
    assert ApiErrorCode.from_message("EMAIL_EXISTS") is ApiErrorCode.EMAIL_EXISTS
    assert (
        ApiErrorCode.from_message("WEAK_PASSWORD : Password should be at least 6 characters")
        is ApiErrorCode.WEAK_PASSWORD
    )
    assert (
        ApiErrorCode.from_message("OPERATION_NOT_ALLOWED : Password sign-in is disabled")
        is ApiErrorCode.OPERATION_NOT_ALLOWED
    )
    assert (
        ApiErrorCode.from_message('Invalid JSON payload received. Unknown name "foo"')
        is ApiErrorCode.INVALID_JSON_PAYLOAD_RECEIVED
    )
    assert ApiErrorCode.from_message("INVALID_IDP_RESPONSE") is ApiErrorCode.INVALID_IDP_RESPONSE
    assert ApiErrorCode.from_message("SOMETHING_NEW") is ApiErrorCode.UNKNOWN


# --- IdP credentials ---


def test_idp_post_body_query():
    body = IdpPostBody.from_access_token(ProviderId.GOOGLE, "ya29.token")
    assert body.query() == "access_token=ya29.token&providerId=google.com"
    assert str(body) == body.query()
    assert "ya29" not in repr(body)

    body = IdpPostBody.create(
        ProviderId.TWITTER,
        {"oauth_token_secret": "s", "access_token": "t"},
    )
    assert body.query() == "access_token=t&oauth_token_secret=s&providerId=twitter.com"

    with pytest.raises(ValueError):
        IdpPostBody.create(ProviderId.GITHUB, {})


def test_oauth_token_creates_idp_post_body():
    token = OAuthToken(access_token=AccessToken("gho_abc"), expires_in=timedelta(hours=8))
    body = token.create_idp_post_body(ProviderId.GITHUB)
    assert body == IdpPostBody.from_access_token(ProviderId.GITHUB, "gho_abc")
    assert token.refresh_token is None


# --- entities ---


def test_id_token_claims_from_payload():
    claims = IdTokenClaims.from_payload(
        {
            "exp": 2000,
            "iat": 1000,
            "aud": "proj",
            "iss": "https://securetoken.google.com/proj",
            "sub": "uid-1",
            "auth_time": 999,
            "email": "ignored@example.com",
        }
    )
    assert claims == IdTokenClaims(
        exp=2000,
        iat=1000,
        aud="proj",
        iss="https://securetoken.google.com/proj",
        sub="uid-1",
        auth_time=999,
    )

    with pytest.raises(KeyError):
        IdTokenClaims.from_payload({"exp": 1})
    with pytest.raises(TypeError):
        IdTokenClaims.from_payload(
            {"exp": "2000", "iat": 1, "aud": "a", "iss": "i", "sub": "s", "auth_time": 1}
        )


def test_user_data_from_response():
    user = UserData.from_response(
        {
            "localId": "uid-1",
            "email": "user@example.com",
            "emailVerified": True,
            "displayName": "User",
            "providerUserInfo": [
                {"providerId": "password", "email": "user@example.com", "rawId": "user@example.com"},
                {"providerId": "google.com", "federatedId": "123", "rawId": "123"},
            ],
            "validSince": "1700000000",
            "lastLoginAt": "1700000000000",
            "createdAt": "1690000000000",
        }
    )
    assert user.local_id == "uid-1"
    assert user.email_verified is True
    assert user.disabled is False
    assert user.provider_ids == {"password", "google.com"}
    assert user.provider_user_info[1].federated_id == "123"
    assert user.photo_url is None


def test_providers_for_email_defaults():
    assert ProvidersForEmail.from_response({}) == ProvidersForEmail((), False)
    result = ProvidersForEmail.from_response({"allProviders": ["password"], "registered": True})
    assert result.all_providers == ("password",)
    assert result.registered is True
