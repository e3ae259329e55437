from __future__ import annotations

import json
from typing import Any, Dict, Optional

import httpx
import jwt
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from jwt.exceptions import InvalidTokenError as JWTInvalidTokenError

from ...domain.constants import ISSUER_PREFIX, PUBLIC_KEY_URL
from ...domain.entities import IdTokenClaims
from ...domain.exceptions import (
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
from ...domain.ports import Clock, default_clock
from ...domain.value_objects import ProjectId
from ...log_utils import get_logger

logger = get_logger(__name__)

ALGORITHM = "RS256"
REQUIRED_CLAIMS = ["exp", "iat", "aud", "iss", "sub", "auth_time"]


class IdTokenVerifier:
    """
    Verifies ID tokens issued for one project, offline except for the
    key-set fetch.

    Infrastructure layer:
    - Knows about JWT structure and RS256 verification (PyJWT).
    - Knows how to fetch the issuer's rotating X.509 key set.

    Every failure is its own VerificationError subclass, raised in gate
    order: header, kid, key set, key, signature/claims, timestamps.
    """

    def __init__(
        self,
        project_id: ProjectId | str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        public_key_url: str = PUBLIC_KEY_URL,
        clock: Clock = default_clock,
    ) -> None:
        if isinstance(project_id, str):
            project_id = ProjectId(project_id)
        self._project_id = project_id
        self._issuer = f"{ISSUER_PREFIX}{project_id.value}"
        self._public_key_url = public_key_url
        self._clock = clock
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    @property
    def issuer(self) -> str:
        return self._issuer

    async def verify(self, token: str) -> IdTokenClaims:
        """
        Verify `token` and return its claims.

        Raises:
            VerificationError subclasses, one per failed gate.
        """
        kid = self._check_header(token)
        key_set = await self._fetch_key_set()

        pem = key_set.get(kid)
        if pem is None:
            raise PublicKeyNotFoundError(kid)

        public_key = load_rsa_public_key(pem)

        try:
            payload = jwt.decode(
                token,
                public_key,
                algorithms=[ALGORITHM],
                audience=self._project_id.value,
                issuer=self._issuer,
                options={
                    "require": REQUIRED_CLAIMS,
                    # Timestamps are checked below, exactly, against our clock.
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
            claims = IdTokenClaims.from_payload(payload)
        except JWTInvalidTokenError as exc:
            raise DecodeTokenFailedError(f"Invalid token: {exc}") from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise DecodeTokenFailedError(f"Invalid claims: {exc}") from exc

        now = int(self._clock())
        if claims.exp < now:
            raise TokenExpiredError(claims.exp)
        if claims.iat > now:
            raise TokenIssuedInTheFutureError(claims.iat)

        logger.debug("Verified ID token for sub=%s", claims.sub)
        return claims

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _check_header(token: str) -> str:
        try:
            header = jwt.get_unverified_header(token)
        except JWTInvalidTokenError as exc:
            raise DecodeTokenHeaderFailedError(f"Invalid token header: {exc}") from exc

        typ = header.get("typ")
        if typ != "JWT":
            raise InvalidTokenTypeError(typ)

        alg = header.get("alg")
        if alg != ALGORITHM:
            raise InvalidAlgorithmError(alg)

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise KidNotFoundError()
        return kid

    async def _fetch_key_set(self) -> Dict[str, str]:
        """
        Fetch the current key set. Not cached: the issuer rotates keys and
        a fresh fetch is always correct.
        """
        try:
            response = await self._client.get(self._public_key_url)
        except httpx.HTTPError as exc:
            raise KeySetRequestFailedError(f"Key set request failed: {exc}") from exc

        if response.status_code != 200:
            raise InvalidResponseStatusCodeError(response.status_code)

        try:
            body: Any = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DeserializeResponseJsonFailedError(f"Key set is not JSON: {exc}") from exc

        if not isinstance(body, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in body.items()
        ):
            raise DeserializeResponseJsonFailedError("Key set is not a map of kid to PEM")
        return body


def load_rsa_public_key(pem: str) -> RSAPublicKey:
    """
    Load an RSA public key from an X.509 certificate PEM or a bare public
    key PEM.
    """
    data = pem.encode("utf-8")
    try:
        if b"-----BEGIN CERTIFICATE-----" in data:
            key = x509.load_pem_x509_certificate(data).public_key()
        else:
            key = serialization.load_pem_public_key(data)
    except ValueError as exc:
        raise GetDecodingKeyFailedError(f"Malformed PEM: {exc}") from exc

    if not isinstance(key, RSAPublicKey):
        raise GetDecodingKeyFailedError(f"Not an RSA public key: {type(key).__name__}")
    return key


async def verify_id_token(
    token: str,
    project_id: ProjectId | str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    public_key_url: str = PUBLIC_KEY_URL,
    clock: Clock = default_clock,
) -> IdTokenClaims:
    """Stateless form of `IdTokenVerifier.verify`."""
    verifier = IdTokenVerifier(
        project_id,
        client=client,
        public_key_url=public_key_url,
        clock=clock,
    )
    try:
        return await verifier.verify(token)
    finally:
        await verifier.aclose()
