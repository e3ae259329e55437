from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping, Optional, Tuple, TypeVar

from ..adapters.identity_toolkit.transport import locale_headers
from ..domain.constants import DeleteAttribute, Endpoint, ProviderId
from ..domain.entities import UserData
from ..domain.exceptions import (
    ResponseDecodeError,
    SessionConsumedError,
    UserDataNotFoundError,
)
from ..domain.ports import Transport
from ..domain.value_objects import (
    ApiKey,
    ExpiresIn,
    IdentityToken,
    IdpPostBody,
    RefreshToken,
)
from ..log_utils import get_logger, mask_secret
from .retry import RETRY_ATTEMPTS, with_retry

logger = get_logger(__name__)

T = TypeVar("T")


def require_str(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise ResponseDecodeError(f"Missing or invalid {key!r} in response", json.dumps(payload))
    return value


@dataclass(slots=True)
class Session:
    """
    Signed-in user holding an identity/refresh token pair.

    Every operation consumes the session it is called on and, on success,
    returns a new Session (the same tokens, or refreshed ones when the
    identity token had expired). Calling any operation on a consumed
    session raises SessionConsumedError; `clone()` first if you need to
    keep a usable handle across a call that may fail.

    `delete_account` is terminal and returns no successor.
    """

    transport: Transport
    api_key: ApiKey
    identity_token: IdentityToken
    refresh_token_value: RefreshToken
    expires_in: ExpiresIn
    max_attempts: int = RETRY_ATTEMPTS
    _consumed: bool = field(default=False, init=False, repr=False, compare=False)

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    @classmethod
    def from_response(
        cls,
        transport: Transport,
        api_key: ApiKey,
        payload: Mapping[str, Any],
        *,
        max_attempts: int = RETRY_ATTEMPTS,
    ) -> Session:
        """
        Build a session from a sign-in style payload
        (`idToken`, `refreshToken`, `expiresIn`).
        """
        return cls(
            transport=transport,
            api_key=api_key,
            identity_token=IdentityToken(require_str(payload, "idToken")),
            refresh_token_value=RefreshToken(require_str(payload, "refreshToken")),
            expires_in=ExpiresIn.parse(require_str(payload, "expiresIn")),
            max_attempts=max_attempts,
        )

    @property
    def consumed(self) -> bool:
        return self._consumed

    def clone(self) -> Session:
        """Return an unconsumed session holding the same tokens."""
        self._ensure_usable()
        return self._successor()

    # ------------------------------------------------------------------ #
    # Profile
    # ------------------------------------------------------------------ #

    async def change_email(self, new_email: str, locale: Optional[str] = None) -> Session:
        self._consume()
        body = {"email": new_email, "returnSecureToken": False}
        return await self._call_update(body, headers=locale_headers(locale))

    async def change_password(self, new_password: str) -> Session:
        self._consume()
        return await self._call_update({"password": new_password})

    async def update_profile(
        self,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> Session:
        self._consume()
        body: Dict[str, Any] = {"returnSecureToken": False}
        if display_name is not None:
            body["displayName"] = display_name
        if photo_url is not None:
            body["photoUrl"] = photo_url
        return await self._call_update(body)

    async def delete_profile(self, attributes: Iterable[DeleteAttribute]) -> Session:
        self._consume()
        body = {
            "deleteAttribute": sorted({a.value for a in attributes}),
            "returnSecureToken": False,
        }
        return await self._call_update(body)

    async def get_user_data(self) -> Tuple[Session, UserData]:
        self._consume()

        async def lookup(session: Session) -> UserData:
            payload = await session._send(Endpoint.LOOKUP, {})
            users = payload.get("users") or []
            if not users:
                raise UserDataNotFoundError("No user in lookup response")
            return UserData.from_response(users[0])

        session, user = await self._run(lookup)
        return session._successor(), user

    # ------------------------------------------------------------------ #
    # Linking
    # ------------------------------------------------------------------ #

    async def link_with_email_password(self, email: str, password: str) -> Session:
        """Link an email/password credential; returns the session the link issued."""
        self._consume()

        async def link(session: Session) -> Dict[str, Any]:
            return await session._send(
                Endpoint.UPDATE,
                {"email": email, "password": password, "returnSecureToken": True},
            )

        session, payload = await self._run(link)
        return session._from_link(payload)

    async def link_with_oauth_credential(
        self,
        request_uri: str,
        post_body: IdpPostBody,
    ) -> Session:
        """Link a third-party IdP credential; returns the session the link issued."""
        self._consume()

        async def link(session: Session) -> Dict[str, Any]:
            return await session._send(
                Endpoint.SIGN_IN_WITH_IDP,
                {
                    "requestUri": request_uri,
                    "postBody": post_body.query(),
                    "returnSecureToken": True,
                    "returnIdpCredential": True,
                },
            )

        session, payload = await self._run(link)
        return session._from_link(payload)

    async def unlink_provider(self, provider_ids: Iterable[ProviderId]) -> Session:
        self._consume()
        body = {"deleteProvider": sorted({p.value for p in provider_ids})}
        return await self._call_update(body)

    # ------------------------------------------------------------------ #
    # Account
    # ------------------------------------------------------------------ #

    async def send_email_verification(self, locale: Optional[str] = None) -> Session:
        self._consume()
        headers = locale_headers(locale)

        async def send(session: Session) -> None:
            await session._send(
                Endpoint.SEND_OOB_CODE,
                {"requestType": "VERIFY_EMAIL"},
                headers=headers,
            )

        session, _ = await self._run(send)
        return session._successor()

    async def delete_account(self) -> None:
        self._consume()

        async def delete(session: Session) -> None:
            await session._send(Endpoint.DELETE, {})

        await self._run(delete)
        logger.info("Account deleted")

    async def refresh_token(self) -> Session:
        """Exchange the refresh token for a new token pair."""
        self._consume()
        return await self._refresh()

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _ensure_usable(self) -> None:
        if self._consumed:
            raise SessionConsumedError("Session was already consumed; use the returned session")

    def _consume(self) -> None:
        self._ensure_usable()
        self._consumed = True

    def _successor(self) -> Session:
        return Session(
            transport=self.transport,
            api_key=self.api_key,
            identity_token=self.identity_token,
            refresh_token_value=self.refresh_token_value,
            expires_in=self.expires_in,
            max_attempts=self.max_attempts,
        )

    def _from_link(self, payload: Mapping[str, Any]) -> Session:
        return Session.from_response(
            self.transport, self.api_key, payload, max_attempts=self.max_attempts
        )

    async def _send(
        self,
        endpoint: Endpoint,
        body: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        return await self.transport.send(
            endpoint,
            self.api_key,
            {"idToken": self.identity_token.value, **body},
            headers,
        )

    async def _run(
        self, operation: Callable[[Session], Awaitable[T]]
    ) -> Tuple[Session, T]:
        return await with_retry(
            self, operation, Session._refresh, max_attempts=self.max_attempts
        )

    async def _call_update(
        self,
        body: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
    ) -> Session:
        async def update(session: Session) -> None:
            await session._send(Endpoint.UPDATE, body, headers)

        session, _ = await self._run(update)
        return session._successor()

    async def _refresh(self) -> Session:
        """Refresh without consuming; used by the retry wrapper."""
        payload = await self.transport.send(
            Endpoint.TOKEN,
            self.api_key,
            {
                "grant_type": "refresh_token",
                "refresh_token": self.refresh_token_value.value,
            },
        )
        session = Session(
            transport=self.transport,
            api_key=self.api_key,
            identity_token=IdentityToken(require_str(payload, "id_token")),
            refresh_token_value=RefreshToken(require_str(payload, "refresh_token")),
            expires_in=ExpiresIn.parse(require_str(payload, "expires_in")),
            max_attempts=self.max_attempts,
        )
        logger.info(
            "Refreshed session, new refresh token %s",
            mask_secret(session.refresh_token_value.value),
        )
        return session
