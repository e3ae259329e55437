from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx

from ..adapters.identity_toolkit.transport import IdentityToolkitTransport, locale_headers
from ..adapters.securetoken.jwt_verifier import IdTokenVerifier
from ..domain.constants import Endpoint
from ..domain.entities import IdTokenClaims, ProvidersForEmail, VerifiedEmail
from ..domain.ports import Clock, Transport, default_clock
from ..domain.value_objects import IdpPostBody, RefreshToken
from ..log_utils import get_logger
from ..settings import FireAuthSettings
from .retry import RETRY_ATTEMPTS
from .session import Session, require_str

logger = get_logger(__name__)


class AuthClient:
    """
    Entry points that do not need an existing Session: sign-up, sign-in,
    password reset and ID token verification.

    Framework-agnostic. Pass a `transport` to share one across clients
    (and close it yourself); otherwise an IdentityToolkitTransport is
    created from the settings and closed by `aclose()`.
    """

    def __init__(
        self,
        settings: FireAuthSettings,
        *,
        transport: Optional[Transport] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Clock = default_clock,
        max_attempts: int = RETRY_ATTEMPTS,
    ) -> None:
        self._settings = settings
        self._api_key = settings.api_key_value
        self._max_attempts = max_attempts
        self._clock = clock
        self._http_client = http_client
        self._owned_transport: Optional[IdentityToolkitTransport] = None
        if transport is None:
            self._owned_transport = IdentityToolkitTransport(
                identity_toolkit_url=settings.identity_toolkit_url,
                secure_token_url=settings.secure_token_url,
                client=http_client,
                timeout_seconds=settings.timeout_seconds,
            )
            transport = self._owned_transport
        self._transport: Transport = transport
        self._verifier: Optional[IdTokenVerifier] = None

    @property
    def transport(self) -> Transport:
        return self._transport

    # ------------------------------------------------------------------ #
    # Sign-up / sign-in
    # ------------------------------------------------------------------ #

    async def sign_up_with_email_password(self, email: str, password: str) -> Session:
        payload = await self._send(
            Endpoint.SIGN_UP,
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return self._session(payload)

    async def sign_in_with_email_password(self, email: str, password: str) -> Session:
        payload = await self._send(
            Endpoint.SIGN_IN_WITH_PASSWORD,
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return self._session(payload)

    async def sign_in_anonymously(self) -> Session:
        payload = await self._send(Endpoint.SIGN_UP, {"returnSecureToken": True})
        return self._session(payload)

    async def sign_in_with_oauth_credential(
        self,
        request_uri: str,
        post_body: IdpPostBody,
    ) -> Session:
        """
        Sign in with a credential obtained from a third-party IdP, e.g.
        ``token.create_idp_post_body(ProviderId.GOOGLE)`` after an OAuth flow.
        """
        payload = await self._send(
            Endpoint.SIGN_IN_WITH_IDP,
            {
                "requestUri": request_uri,
                "postBody": post_body.query(),
                "returnSecureToken": True,
                "returnIdpCredential": True,
            },
        )
        return self._session(payload)

    async def sign_in_with_custom_token(self, token: str) -> Session:
        payload = await self._send(
            Endpoint.SIGN_IN_WITH_CUSTOM_TOKEN,
            {"token": token, "returnSecureToken": True},
        )
        return self._session(payload)

    async def exchange_refresh_token(self, refresh_token: RefreshToken | str) -> Session:
        """Sign in again from a stored refresh token."""
        if isinstance(refresh_token, str):
            refresh_token = RefreshToken(refresh_token)
        payload = await self._send(
            Endpoint.TOKEN,
            {"grant_type": "refresh_token", "refresh_token": refresh_token.value},
        )
        return self._session(
            {
                "idToken": payload.get("id_token"),
                "refreshToken": payload.get("refresh_token"),
                "expiresIn": payload.get("expires_in"),
            }
        )

    # ------------------------------------------------------------------ #
    # Stateless account calls
    # ------------------------------------------------------------------ #

    async def fetch_providers_for_email(self, email: str, continue_uri: str) -> ProvidersForEmail:
        payload = await self._send(
            Endpoint.CREATE_AUTH_URI,
            {"identifier": email, "continueUri": continue_uri},
        )
        return ProvidersForEmail.from_response(payload)

    async def send_reset_password_email(self, email: str, locale: Optional[str] = None) -> None:
        await self._send(
            Endpoint.SEND_OOB_CODE,
            {"requestType": "PASSWORD_RESET", "email": email},
            headers=locale_headers(locale),
        )

    async def verify_password_reset_code(self, oob_code: str) -> str:
        """Return the email the reset code was issued for."""
        payload = await self._send(Endpoint.RESET_PASSWORD, {"oobCode": oob_code})
        return require_str(payload, "email")

    async def confirm_password_reset(self, oob_code: str, new_password: str) -> str:
        payload = await self._send(
            Endpoint.RESET_PASSWORD,
            {"oobCode": oob_code, "newPassword": new_password},
        )
        return require_str(payload, "email")

    async def confirm_email_verification(self, oob_code: str) -> VerifiedEmail:
        """Apply the code from a verification email sent by `send_email_verification`."""
        payload = await self._send(Endpoint.UPDATE, {"oobCode": oob_code})
        require_str(payload, "email")
        return VerifiedEmail.from_response(payload)

    # ------------------------------------------------------------------ #
    # Verification
    # ------------------------------------------------------------------ #

    async def verify_id_token(self, id_token: str) -> IdTokenClaims:
        """
        Raises:
            ValueError if the settings carry no project id
            VerificationError subclasses
        """
        return await self._get_verifier().verify(id_token)

    async def aclose(self) -> None:
        if self._verifier is not None:
            await self._verifier.aclose()
        if self._owned_transport is not None:
            await self._owned_transport.aclose()

    async def __aenter__(self) -> AuthClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    async def _send(
        self,
        endpoint: Endpoint,
        body: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        return await self._transport.send(endpoint, self._api_key, body, headers)

    def _session(self, payload: Mapping[str, Any]) -> Session:
        session = Session.from_response(
            self._transport, self._api_key, payload, max_attempts=self._max_attempts
        )
        logger.info("Signed in, session expires in %ss", session.expires_in.seconds)
        return session

    def _get_verifier(self) -> IdTokenVerifier:
        if self._verifier is None:
            project_id = self._settings.project_id_value
            if project_id is None:
                raise ValueError("FireAuthSettings.project_id is required to verify ID tokens")
            self._verifier = IdTokenVerifier(
                project_id,
                client=self._http_client,
                public_key_url=self._settings.public_key_url,
                clock=self._clock,
            )
        return self._verifier
