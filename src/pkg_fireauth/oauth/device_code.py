from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
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
from ..domain.value_objects import DeviceUserCode, VerificationUri
from ..log_utils import get_logger
from .auth_code import join_scopes
from .config import DeviceCodeConfig
from .polling import poll
from .token_endpoint import parse_token, post_form

logger = get_logger(__name__)

DEVICE_CODE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"
DEFAULT_INTERVAL_SECONDS = 5


def _non_negative_int(payload: Mapping[str, Any], key: str, default: Optional[int] = None) -> int:
    value = payload.get(key, default)
    if isinstance(value, str) and value.isdigit():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise DeviceAuthorizationFailedError(
            f"Invalid {key!r} in device authorization response", body=dict(payload)
        )
    return value


class DeviceCodeClient:
    """
    Generic device authorization grant (RFC 8628).

    `clock` is injectable so polling deadlines are testable.
    """

    def __init__(
        self,
        config: DeviceCodeConfig,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Clock = default_clock,
    ) -> None:
        self._config = config
        self._clock = clock
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient()

    @property
    def config(self) -> DeviceCodeConfig:
        return self._config

    async def request_authorization(self, scopes: Iterable[str] | str) -> DeviceCodeSession:
        """
        Ask the provider for a device code and a user code to display.

        Raises:
            DeviceAuthorizationFailedError
        """
        form: Dict[str, str] = {
            "client_id": self._config.client_id,
            "scope": join_scopes(scopes),
        }
        if self._config.client_secret:
            form["client_secret"] = self._config.client_secret

        status_code, payload = await post_form(
            self._http,
            self._config.device_authorization_url,
            form,
            error_cls=DeviceAuthorizationFailedError,
        )
        if not 200 <= status_code < 300 or "error" in payload:
            raise DeviceAuthorizationFailedError(
                f"Device authorization refused: {payload.get('error')}",
                status_code=status_code,
                body=payload,
            )

        device_code = payload.get("device_code")
        user_code = payload.get("user_code")
        # Google spells it `verification_url`.
        verification_uri = payload.get("verification_uri") or payload.get("verification_url")
        if not all(isinstance(v, str) and v for v in (device_code, user_code, verification_uri)):
            raise DeviceAuthorizationFailedError(
                "Incomplete device authorization response",
                status_code=status_code,
                body=payload,
            )

        complete = payload.get("verification_uri_complete")
        session = DeviceCodeSession(
            verification_uri=VerificationUri(verification_uri),
            verification_uri_complete=complete if isinstance(complete, str) else None,
            user_code=DeviceUserCode(user_code),
            device_code=device_code,
            interval=_non_negative_int(payload, "interval", DEFAULT_INTERVAL_SECONDS),
            expires_in=_non_negative_int(payload, "expires_in"),
            created_at=self._clock(),
            config=self._config,
            http_client=self._http,
            clock=self._clock,
        )
        logger.debug(
            "Device authorization granted, user code %s, expires in %ss",
            session.user_code,
            session.expires_in,
        )
        return session

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> DeviceCodeClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


@dataclass(slots=True)
class DeviceCodeSession:
    """
    A pending device authorization.

    Show `verification_uri` and `user_code` to the user, then await
    `poll_exchange_token` once.
    """

    verification_uri: VerificationUri
    user_code: DeviceUserCode
    verification_uri_complete: Optional[str] = None
    device_code: str = field(default="", repr=False)
    interval: int = DEFAULT_INTERVAL_SECONDS
    expires_in: int = 0
    created_at: float = 0.0
    config: Optional[DeviceCodeConfig] = field(default=None, repr=False)
    http_client: Optional[httpx.AsyncClient] = field(default=None, repr=False)
    clock: Clock = field(default=default_clock, repr=False)
    _consumed: bool = field(default=False, init=False, repr=False)

    @property
    def expires_at(self) -> float:
        return self.created_at + self.expires_in

    async def poll_exchange_token(
        self,
        sleep_fn: SleepFn = asyncio.sleep,
        timeout: Optional[float] = None,
    ) -> OAuthToken:
        """
        Poll the token endpoint until the user authorizes the device.

        The deadline is `min(timeout, expires_in)` after the session was
        created.

        Raises:
            SessionConsumedError            on a second call
            PollingTimeoutError             when the deadline is reached
            DeviceExchangeTokenFailedError  on any terminal provider error
        """
        if self._consumed:
            raise SessionConsumedError("Device code session was already polled")
        self._consumed = True
        config, client = self.config, self.http_client
        if config is None or client is None:
            raise DeviceExchangeTokenFailedError("Device code session is not bound to a client")

        limit = float(self.expires_in) if timeout is None else min(timeout, float(self.expires_in))
        return await poll(
            lambda: self._exchange_token(config, client),
            interval=float(self.interval),
            deadline=self.created_at + limit,
            timeout=limit,
            clock=self.clock,
            sleep_fn=sleep_fn,
        )

    async def _exchange_token(
        self, config: DeviceCodeConfig, client: httpx.AsyncClient
    ) -> OAuthToken:
        form: Dict[str, str] = {
            "client_id": config.client_id,
            "device_code": self.device_code,
            "grant_type": DEVICE_CODE_GRANT_TYPE,
        }
        if config.client_secret:
            form["client_secret"] = config.client_secret

        status_code, payload = await post_form(
            client,
            config.token_url,
            form,
            error_cls=DeviceExchangeTokenFailedError,
        )

        error = payload.get("error")
        if error == "authorization_pending":
            raise ContinuePolling()
        if error == "slow_down":
            raise ContinuePolling(slow_down=True)
        if error is not None or not 200 <= status_code < 300:
            raise DeviceExchangeTokenFailedError(
                f"Device token exchange failed: {error}",
                status_code=status_code,
                body=payload,
            )

        token = parse_token(status_code, payload, error_cls=DeviceExchangeTokenFailedError)
        logger.info("Device authorization completed for client_id=%s", config.client_id)
        return token
