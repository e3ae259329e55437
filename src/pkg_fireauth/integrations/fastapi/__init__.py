"""

from pkg_fireauth.integrations.fastapi import create_fastapi_auth
from app.config import settings  # your own settings

fastapi_auth = create_fastapi_auth(project_id=settings.FIREBASE_PROJECT_ID)

get_current_claims = fastapi_auth.get_current_claims
get_optional_claims = fastapi_auth.get_optional_claims


"""
from __future__ import annotations

from typing import Optional

import httpx

from .deps import DEFAULT_COOKIE_NAME, FastAPIIdTokenAuth, bearer_scheme
from ...adapters.securetoken.jwt_verifier import IdTokenVerifier
from ...domain.constants import PUBLIC_KEY_URL


def create_fastapi_auth(
    *,
    project_id: str,
    cookie_name: str = DEFAULT_COOKIE_NAME,
    public_key_url: str = PUBLIC_KEY_URL,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPIIdTokenAuth:
    """
    High-level helper for FastAPI apps:

    - Creates an IdTokenVerifier pinned to `project_id`
    - Wraps it in FastAPIIdTokenAuth, exposing:

        fastapi_auth.get_current_claims
        fastapi_auth.get_optional_claims
    """
    verifier = IdTokenVerifier(
        project_id,
        client=http_client,
        public_key_url=public_key_url,
    )
    return FastAPIIdTokenAuth(verifier=verifier, cookie_name=cookie_name)


__all__ = [
    "FastAPIIdTokenAuth",
    "bearer_scheme",
    "create_fastapi_auth",
]
