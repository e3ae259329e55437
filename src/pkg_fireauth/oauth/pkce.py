"""PKCE (Proof Key for Code Exchange) and CSRF state helpers.

RFC 7636: a random *code verifier* stays in this process, only the
*code challenge* derived from it is sent to the authorize endpoint.

Nothing here logs verifiers, challenges or states.
"""

from __future__ import annotations

import base64
import secrets
from hashlib import sha256
from typing import Final

from ..domain.value_objects import CsrfState, PkceVerifier

# RFC 7636 section 4.1: 43 to 128 characters.
_VERIFIER_LEN: Final[int] = 64
_ALLOWED_CHARS: Final[str] = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "0123456789"
    "-._~"
)
_STATE_BYTES: Final[int] = 32


def generate_code_verifier(length: int = _VERIFIER_LEN) -> PkceVerifier:
    if not 43 <= length <= 128:
        raise ValueError("code verifier length must be 43-128 characters")
    return PkceVerifier("".join(secrets.choice(_ALLOWED_CHARS) for _ in range(length)))


def code_challenge_s256(verifier: PkceVerifier) -> str:
    """Base64url-encoded SHA-256 of the verifier, without padding."""
    digest = sha256(verifier.value.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_csrf_state() -> CsrfState:
    return CsrfState(secrets.token_urlsafe(_STATE_BYTES))
