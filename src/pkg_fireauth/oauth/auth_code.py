from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional
from urllib.parse import urlencode

import httpx

from ..domain.entities import OAuthToken
from ..domain.exceptions import (
    AuthCodeExchangeFailedError,
    SessionConsumedError,
    StateMismatchError,
)
from ..domain.value_objects import AuthorizationCode, CsrfState, PkceVerifier
from ..log_utils import get_logger, mask_secret
from .config import AuthorizationCodeConfig
from .pkce import code_challenge_s256, generate_code_verifier, generate_csrf_state
from .token_endpoint import parse_token, post_form

logger = get_logger(__name__)


def join_scopes(scopes: Iterable[str] | str, separator: str = " ") -> str:
    """
    Deduplicate scopes, keeping the caller's order. A single string is
    read as a space-delimited scope list.
    """
    if isinstance(scopes, str):
        scopes = scopes.split()
    return separator.join(dict.fromkeys(s for s in scopes if s))


class AuthorizationCodeClient:
    """
    Generic authorization-code flow (RFC 6749 section 4.1) with CSRF
    state binding and optional PKCE.

    Provider clients are instances of this class built by the factories
    in `pkg_fireauth.oauth.providers`.
    """

    def __init__(
        self,
        config: AuthorizationCodeConfig,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient()

    @property
    def config(self) -> AuthorizationCodeConfig:
        return self._config

    def generate_session(self, scopes: Iterable[str] | str) -> AuthorizationCodeSession:
        """
        Start one authorization: fresh CSRF state, fresh PKCE verifier when
        the provider supports it, and the URL to send the user to.
        """
        config = self._config
        state = generate_csrf_state()
        verifier: Optional[PkceVerifier] = None

        params: Dict[str, str] = {
            "response_type": "code",
            "client_id": config.client_id,
            "redirect_uri": config.redirect_url,
            "scope": join_scopes(scopes),
            "state": state.value,
        }
        if config.pkce_method.enabled:
            verifier = generate_code_verifier()
            params["code_challenge"] = code_challenge_s256(verifier)
            params["code_challenge_method"] = config.pkce_method.value

        separator = "&" if "?" in config.authorize_url else "?"
        authorize_url = f"{config.authorize_url}{separator}{urlencode(params)}"

        logger.debug(
            "Built authorize URL for client_id=%s state=%s",
            config.client_id,
            mask_secret(state.value),
        )
        return AuthorizationCodeSession(
            authorize_url=authorize_url,
            config=config,
            csrf_state=state,
            pkce_verifier=verifier,
            http_client=self._http,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> AuthorizationCodeClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


@dataclass(slots=True)
class AuthorizationCodeSession:
    """
    One pending authorization. Redeem it once with
    `exchange_code_into_token`; a second call raises SessionConsumedError.
    """

    authorize_url: str
    config: AuthorizationCodeConfig = field(repr=False)
    csrf_state: CsrfState = field(repr=False)
    pkce_verifier: Optional[PkceVerifier] = field(default=None, repr=False)
    http_client: Optional[httpx.AsyncClient] = field(default=None, repr=False)
    _consumed: bool = field(default=False, init=False, repr=False)

    async def exchange_code_into_token(
        self,
        code: AuthorizationCode | str,
        state: CsrfState | str,
    ) -> OAuthToken:
        """
        Redeem the code returned on redirect.

        Raises:
            SessionConsumedError   if this session was already exchanged
            StateMismatchError     if `state` is not the one sent to the IdP
            AuthCodeExchangeFailedError on a transport or provider failure
        """
        if self._consumed:
            raise SessionConsumedError("Authorization code session was already exchanged")
        self._consumed = True

        if isinstance(code, str):
            code = AuthorizationCode(code)
        received = state.value if isinstance(state, CsrfState) else state
        if received != self.csrf_state.value:
            raise StateMismatchError()

        form: Dict[str, str] = {
            "grant_type": "authorization_code",
            "code": code.value,
            "redirect_uri": self.config.redirect_url,
            "client_id": self.config.client_id,
        }
        if self.config.client_secret:
            form["client_secret"] = self.config.client_secret
        if self.pkce_verifier is not None:
            form["code_verifier"] = self.pkce_verifier.value

        if self.http_client is not None:
            return await self._exchange(self.http_client, form)
        async with httpx.AsyncClient() as client:
            return await self._exchange(client, form)

    async def _exchange(self, client: httpx.AsyncClient, form: Dict[str, str]) -> OAuthToken:
        status_code, payload = await post_form(
            client,
            self.config.token_url,
            form,
            error_cls=AuthCodeExchangeFailedError,
        )
        # Some providers answer 200 with an `error` member.
        if not 200 <= status_code < 300 or "error" in payload:
            raise AuthCodeExchangeFailedError(
                f"Token endpoint refused the authorization code: {payload.get('error')}",
                status_code=status_code,
                body=payload,
            )
        token = parse_token(status_code, payload, error_cls=AuthCodeExchangeFailedError)
        logger.info("Exchanged authorization code for client_id=%s", self.config.client_id)
        return token
