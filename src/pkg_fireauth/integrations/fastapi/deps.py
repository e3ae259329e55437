from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...adapters.securetoken.jwt_verifier import IdTokenVerifier
from ...domain.entities import IdTokenClaims
from ...domain.exceptions import TokenExpiredError, VerificationError
from ...log_utils import get_logger

logger = get_logger(__name__)

# Shows the bearer scheme in OpenAPI; parsing of the header is left to it.
bearer_scheme = HTTPBearer(auto_error=False)

DEFAULT_COOKIE_NAME = "id_token"


@dataclass(slots=True)
class FastAPIIdTokenAuth:
    """
    FastAPI dependencies verifying the caller's ID token.

    The token is read from `Authorization: Bearer <id token>` or, for
    browser clients, from the `cookie_name` cookie.

        auth = create_fastapi_auth(project_id="my-project")

        @app.get("/me")
        async def me(claims: IdTokenClaims = Depends(auth.get_current_claims)):
            return {"uid": claims.sub}
    """

    verifier: IdTokenVerifier
    cookie_name: str = DEFAULT_COOKIE_NAME

    def id_token_from(
            self,
            request: Request,
            credentials: Optional[HTTPAuthorizationCredentials],
    ) -> Optional[str]:
        if credentials is not None and credentials.credentials.strip():
            return credentials.credentials.strip()
        return request.cookies.get(self.cookie_name) or None

    async def get_current_claims(
            self,
            request: Request,
            credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    ) -> IdTokenClaims:
        """Dependency: require a valid ID token."""
        token = self.id_token_from(request, credentials)
        if token is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated",
                headers={"WWW-Authenticate": "Bearer"},
            )
        try:
            return await self.verifier.verify(token)
        except TokenExpiredError as exc:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token expired",
                headers={"WWW-Authenticate": "Bearer"},
            ) from exc
        except VerificationError as exc:
            logger.debug("Rejected ID token: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=str(exc),
                headers={"WWW-Authenticate": "Bearer"},
            ) from exc

    async def get_optional_claims(
            self,
            request: Request,
            credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    ) -> IdTokenClaims | None:
        """Dependency: claims when a valid ID token is present, else None."""
        token = self.id_token_from(request, credentials)
        if token is None:
            return None
        try:
            return await self.verifier.verify(token)
        except VerificationError:
            return None
