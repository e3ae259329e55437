from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, Iterable, Mapping, Optional

import httpx

from ..domain.entities import OAuthToken
from ..domain.exceptions import (
    ContinuePolling,
    DeviceAuthorizationFailedError,
    DeviceExchangeTokenFailedError,
    SessionConsumedError,
)
from ..domain.ports import Clock, SleepFn, default_clock
from ..domain.value_objects import AccessToken, DeviceUserCode, VerificationUri
from ..log_utils import get_logger
from .auth_code import join_scopes
from .polling import poll
from .token_endpoint import decode_object, parse_expires_in

logger = get_logger(__name__)

FACEBOOK_DEVICE_LOGIN_URL = "https://graph.facebook.com/v2.6/device/login"
FACEBOOK_DEVICE_STATUS_URL = "https://graph.facebook.com/v2.6/device/login_status"

# Documented "keep polling" subcodes; any other subcode is terminal.
SUBCODE_AUTHORIZATION_PENDING = 1349174
SUBCODE_SLOW_DOWN = 1349172


class FacebookDeviceCodeClient:
    """
    Facebook's device login. Not RFC 8628: the client token travels as
    `access_token={app_id}|{client_token}` and a pending authorization is
    reported as an error body with a numeric subcode.
    """

    def __init__(
        self,
        app_id: str,
        client_token: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Clock = default_clock,
        device_login_url: str = FACEBOOK_DEVICE_LOGIN_URL,
        device_status_url: str = FACEBOOK_DEVICE_STATUS_URL,
    ) -> None:
        if not app_id or not client_token:
            raise ValueError("app_id and client_token are required")
        self._app_token = f"{app_id}|{client_token}"
        self._clock = clock
        self._device_login_url = device_login_url
        self._device_status_url = device_status_url
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient()

    async def request_authorization(self, scopes: Iterable[str] | str) -> FacebookDeviceCodeSession:
        params = {"access_token": self._app_token, "scope": join_scopes(scopes, ",")}
        try:
            response = await self._http.post(self._device_login_url, params=params)
        except httpx.HTTPError as exc:
            raise DeviceAuthorizationFailedError(f"Device login request failed: {exc}") from exc

        payload = decode_object(response, error_cls=DeviceAuthorizationFailedError)
        if not response.is_success or "error" in payload:
            raise DeviceAuthorizationFailedError(
                "Facebook refused the device login request",
                status_code=response.status_code,
                body=payload,
            )

        try:
            session = FacebookDeviceCodeSession(
                verification_uri=VerificationUri(str(payload["verification_uri"])),
                user_code=DeviceUserCode(str(payload["user_code"])),
                code=str(payload["code"]),
                expires_in=_seconds(payload["expires_in"]),
                interval=_seconds(payload["interval"]),
                created_at=self._clock(),
                client=self,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise DeviceAuthorizationFailedError(
                f"Incomplete device login response: {exc}",
                status_code=response.status_code,
                body=payload,
            ) from exc
        return session

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> FacebookDeviceCodeClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _login_status(self, code: str) -> OAuthToken:
        params = {"access_token": self._app_token, "code": code}
        try:
            response = await self._http.post(self._device_status_url, params=params)
        except httpx.HTTPError as exc:
            raise DeviceExchangeTokenFailedError(f"Login status request failed: {exc}") from exc

        payload = decode_object(response, error_cls=DeviceExchangeTokenFailedError)
        error = payload.get("error")
        if isinstance(error, Mapping):
            _raise_for_error(response.status_code, payload, error)
        if not response.is_success:
            raise DeviceExchangeTokenFailedError(
                "Login status request failed",
                status_code=response.status_code,
                body=payload,
            )
        return _token_from(response.status_code, payload)


def _raise_for_error(status_code: int, payload: Dict[str, Any], error: Mapping[str, Any]) -> None:
    subcode = error.get("error_subcode")
    if subcode == SUBCODE_AUTHORIZATION_PENDING:
        raise ContinuePolling()
    if subcode == SUBCODE_SLOW_DOWN:
        raise ContinuePolling(slow_down=True)
    raise DeviceExchangeTokenFailedError(
        f"Facebook device login failed: {error.get('message')} (subcode {subcode})",
        status_code=status_code,
        body=payload,
    )


def _seconds(raw: Any) -> int:
    delta = parse_expires_in(raw)
    if delta is None:
        raise ValueError("missing duration")
    return int(delta.total_seconds())


def _token_from(status_code: int, payload: Dict[str, Any]) -> OAuthToken:
    access_token = payload.get("access_token")
    try:
        expires_in = _seconds(payload.get("expires_in"))
    except ValueError as exc:
        raise DeviceExchangeTokenFailedError(
            f"Invalid expires_in in login status response: {exc}",
            status_code=status_code,
            body=payload,
        ) from exc
    if not isinstance(access_token, str) or not access_token:
        raise DeviceExchangeTokenFailedError(
            "Incomplete login status response",
            status_code=status_code,
            body=payload,
        )
    return OAuthToken(
        access_token=AccessToken(access_token),
        refresh_token=None,
        expires_in=timedelta(seconds=expires_in),
    )


@dataclass(slots=True)
class FacebookDeviceCodeSession:
    """Pending Facebook device login; poll it once."""

    verification_uri: VerificationUri
    user_code: DeviceUserCode
    code: str = field(repr=False)
    expires_in: int
    interval: int
    created_at: float
    client: FacebookDeviceCodeClient = field(repr=False)
    _consumed: bool = field(default=False, init=False, repr=False)

    async def poll_exchange_token(
        self,
        sleep_fn: SleepFn = asyncio.sleep,
        timeout: Optional[float] = None,
    ) -> OAuthToken:
        """
        Raises:
            SessionConsumedError, PollingTimeoutError, DeviceExchangeTokenFailedError
        """
        if self._consumed:
            raise SessionConsumedError("Device login session was already polled")
        self._consumed = True

        limit = float(self.expires_in) if timeout is None else min(timeout, float(self.expires_in))
        token = await poll(
            lambda: self.client._login_status(self.code),
            interval=float(self.interval),
            deadline=self.created_at + limit,
            timeout=limit,
            clock=self.client._clock,
            sleep_fn=sleep_fn,
        )
        logger.info("Facebook device login completed")
        return token
