import datetime as dt

import httpx
import jwt
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID

from conftest import NOW, FakeClock, mock_client
from pkg_fireauth.adapters.securetoken.jwt_verifier import (
    IdTokenVerifier,
    load_rsa_public_key,
    verify_id_token,
)
from pkg_fireauth.domain.entities import IdTokenClaims
from pkg_fireauth.domain.exceptions import (
    DecodeTokenFailedError,
    DecodeTokenHeaderFailedError,
    DeserializeResponseJsonFailedError,
    GetDecodingKeyFailedError,
    InvalidAlgorithmError,
    InvalidResponseStatusCodeError,
    InvalidTokenTypeError,
    KeySetRequestFailedError,
    KidNotFoundError,
    PublicKeyNotFoundError,
    TokenExpiredError,
    TokenIssuedInTheFutureError,
)

PROJECT_ID = "my-project"
ISSUER = f"https://securetoken.google.com/{PROJECT_ID}"
KID = "key-1"


@pytest.fixture(scope="module")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="module")
def certificate_pem(private_key) -> str:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "securetoken.system.gserviceaccount.com")])
    now = dt.datetime.now(dt.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - dt.timedelta(days=1))
        .not_valid_after(now + dt.timedelta(days=1))
        .sign(private_key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM).decode()


@pytest.fixture(scope="module")
def public_key_pem(private_key) -> str:
    return (
        private_key.public_key()
        .public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )


def claims(**overrides):
    payload = {
        "iss": ISSUER,
        "aud": PROJECT_ID,
        "auth_time": int(NOW) - 120,
        "user_id": "uid-1",
        "sub": "uid-1",
        "iat": int(NOW) - 60,
        "exp": int(NOW) + 3600,
        "email": "user@example.com",
    }
    payload.update(overrides)
    return {k: v for k, v in payload.items() if v is not None}


def sign(private_key, payload, headers=None) -> str:
    return jwt.encode(payload, private_key, algorithm="RS256", headers=headers or {"kid": KID})


class KeySetEndpoint:
    def __init__(self, response: httpx.Response):
        self.response = response
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        return self.response


def make_verifier(endpoint, clock=None) -> IdTokenVerifier:
    return IdTokenVerifier(
        PROJECT_ID,
        client=mock_client(endpoint),
        clock=clock or FakeClock(),
    )


# --- success paths ---


@pytest.mark.asyncio
async def test_claims_round_trip_with_certificate(private_key, certificate_pem):
    endpoint = KeySetEndpoint(httpx.Response(200, json={"other": "x", KID: certificate_pem}))
    payload = claims()

    result = await make_verifier(endpoint).verify(sign(private_key, payload))

    assert result == IdTokenClaims(
        exp=payload["exp"],
        iat=payload["iat"],
        aud=payload["aud"],
        iss=payload["iss"],
        sub=payload["sub"],
        auth_time=payload["auth_time"],
    )
    assert endpoint.calls == 1


@pytest.mark.asyncio
async def test_claims_round_trip_with_public_key(private_key, public_key_pem):
    endpoint = KeySetEndpoint(httpx.Response(200, json={KID: public_key_pem}))
    result = await make_verifier(endpoint).verify(sign(private_key, claims()))
    assert result.sub == "uid-1"


@pytest.mark.asyncio
async def test_key_set_is_fetched_per_call(private_key, public_key_pem):
    endpoint = KeySetEndpoint(httpx.Response(200, json={KID: public_key_pem}))
    verifier = make_verifier(endpoint)
    token = sign(private_key, claims())

    await verifier.verify(token)
    await verifier.verify(token)

    assert endpoint.calls == 2


@pytest.mark.asyncio
async def test_stateless_verify_id_token(private_key, public_key_pem):
    endpoint = KeySetEndpoint(httpx.Response(200, json={KID: public_key_pem}))
    client = mock_client(endpoint)

    result = await verify_id_token(
        sign(private_key, claims()), PROJECT_ID, client=client, clock=FakeClock()
    )

    assert result.aud == PROJECT_ID
    assert not client.is_closed
    await client.aclose()


# --- header gates (no key set fetch) ---


@pytest.mark.asyncio
async def test_hs256_rejected_before_key_set_fetch():
    endpoint = KeySetEndpoint(httpx.Response(200, json={}))
    token = jwt.encode(claims(), "shared-secret-long-enough-for-hmac-sha256", algorithm="HS256", headers={"kid": KID})

    with pytest.raises(InvalidAlgorithmError) as excinfo:
        await make_verifier(endpoint).verify(token)

    assert excinfo.value.alg == "HS256"
    assert endpoint.calls == 0


@pytest.mark.asyncio
async def test_invalid_token_type(private_key):
    endpoint = KeySetEndpoint(httpx.Response(200, json={}))
    token = sign(private_key, claims(), headers={"kid": KID, "typ": "at+jwt"})

    with pytest.raises(InvalidTokenTypeError):
        await make_verifier(endpoint).verify(token)
    assert endpoint.calls == 0


@pytest.mark.asyncio
async def test_missing_kid(private_key):
    endpoint = KeySetEndpoint(httpx.Response(200, json={}))
    token = jwt.encode(claims(), private_key, algorithm="RS256")

    with pytest.raises(KidNotFoundError):
        await make_verifier(endpoint).verify(token)
    assert endpoint.calls == 0


@pytest.mark.asyncio
async def test_malformed_header():
    endpoint = KeySetEndpoint(httpx.Response(200, json={}))
    with pytest.raises(DecodeTokenHeaderFailedError):
        await make_verifier(endpoint).verify("not-a-jwt")
    assert endpoint.calls == 0


# --- key set gates ---


@pytest.mark.asyncio
async def test_key_set_status_code(private_key):
    endpoint = KeySetEndpoint(httpx.Response(503, text="unavailable"))
    with pytest.raises(InvalidResponseStatusCodeError) as excinfo:
        await make_verifier(endpoint).verify(sign(private_key, claims()))
    assert excinfo.value.status_code == 503


@pytest.mark.asyncio
async def test_key_set_malformed_json(private_key):
    endpoint = KeySetEndpoint(httpx.Response(200, text="{not json"))
    with pytest.raises(DeserializeResponseJsonFailedError):
        await make_verifier(endpoint).verify(sign(private_key, claims()))

    endpoint = KeySetEndpoint(httpx.Response(200, json=["a", "b"]))
    with pytest.raises(DeserializeResponseJsonFailedError):
        await make_verifier(endpoint).verify(sign(private_key, claims()))


@pytest.mark.asyncio
async def test_key_set_network_failure(private_key):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    verifier = IdTokenVerifier(PROJECT_ID, client=mock_client(handler), clock=FakeClock())
    with pytest.raises(KeySetRequestFailedError):
        await verifier.verify(sign(private_key, claims()))


@pytest.mark.asyncio
async def test_rotated_key(private_key, public_key_pem):
    endpoint = KeySetEndpoint(httpx.Response(200, json={"key-2": public_key_pem}))
    with pytest.raises(PublicKeyNotFoundError) as excinfo:
        await make_verifier(endpoint).verify(sign(private_key, claims()))
    assert excinfo.value.kid == KID


@pytest.mark.asyncio
async def test_malformed_pem(private_key):
    endpoint = KeySetEndpoint(httpx.Response(200, json={KID: "-----BEGIN CERTIFICATE-----\ngarbage\n"}))
    with pytest.raises(GetDecodingKeyFailedError):
        await make_verifier(endpoint).verify(sign(private_key, claims()))


def test_non_rsa_key_is_rejected():
    ec_pem = (
        ec.generate_private_key(ec.SECP256R1())
        .public_key()
        .public_bytes(serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo)
        .decode()
    )
    with pytest.raises(GetDecodingKeyFailedError):
        load_rsa_public_key(ec_pem)


# --- signature and claims ---


@pytest.mark.asyncio
async def test_signature_from_other_key(private_key, public_key_pem):
    other = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    endpoint = KeySetEndpoint(httpx.Response(200, json={KID: public_key_pem}))
    with pytest.raises(DecodeTokenFailedError):
        await make_verifier(endpoint).verify(sign(other, claims()))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"aud": "other-project"},
        {"iss": "https://securetoken.google.com/other-project"},
        {"auth_time": None},
        {"sub": None},
        {"iat": None},
    ],
)
async def test_claim_mismatch(private_key, public_key_pem, overrides):
    endpoint = KeySetEndpoint(httpx.Response(200, json={KID: public_key_pem}))
    with pytest.raises(DecodeTokenFailedError):
        await make_verifier(endpoint).verify(sign(private_key, claims(**overrides)))


@pytest.mark.asyncio
async def test_expired_token(private_key, public_key_pem):
    endpoint = KeySetEndpoint(httpx.Response(200, json={KID: public_key_pem}))
    exp = int(NOW) - 1

    with pytest.raises(TokenExpiredError) as excinfo:
        await make_verifier(endpoint).verify(sign(private_key, claims(exp=exp, iat=int(NOW) - 3601)))

    assert excinfo.value.exp == exp


@pytest.mark.asyncio
async def test_token_expiring_now_is_still_valid(private_key, public_key_pem):
    endpoint = KeySetEndpoint(httpx.Response(200, json={KID: public_key_pem}))
    result = await make_verifier(endpoint).verify(sign(private_key, claims(exp=int(NOW))))
    assert result.exp == int(NOW)


@pytest.mark.asyncio
async def test_token_issued_in_the_future(private_key, public_key_pem):
    endpoint = KeySetEndpoint(httpx.Response(200, json={KID: public_key_pem}))
    iat = int(NOW) + 30

    with pytest.raises(TokenIssuedInTheFutureError) as excinfo:
        await make_verifier(endpoint).verify(sign(private_key, claims(iat=iat)))

    assert excinfo.value.iat == iat
