from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional

import httpx

from ...domain.constants import (
    IDENTITY_TOOLKIT_URL,
    LOCALE_HEADER,
    SECURE_TOKEN_URL,
    ApiErrorCode,
    Endpoint,
)
from ...domain.exceptions import (
    ApiError,
    InvalidIdentityTokenError,
    ResponseDecodeError,
    TransportError,
)
from ...domain.ports import Transport
from ...domain.value_objects import ApiKey
from ...log_utils import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


def locale_headers(locale: Optional[str]) -> Optional[Dict[str, str]]:
    """Headers asking the identity service to localize emails it sends."""
    if not locale:
        return None
    return {LOCALE_HEADER: locale}


class IdentityToolkitTransport(Transport):
    """
    Adapter implementing the Transport port over httpx.

    Infrastructure layer:
    - Knows the identity service URL scheme and error envelope.
    - Maps INVALID_ID_TOKEN to InvalidIdentityTokenError, which drives the
      session retry policy; every other error code becomes ApiError.
    """

    def __init__(
        self,
        *,
        identity_toolkit_url: str = IDENTITY_TOOLKIT_URL,
        secure_token_url: str = SECURE_TOKEN_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._identity_toolkit_url = identity_toolkit_url.rstrip("/")
        self._secure_token_url = secure_token_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    # ------------------------------------------------------------------ #
    # Port implementation
    # ------------------------------------------------------------------ #

    async def send(
        self,
        endpoint: Endpoint,
        api_key: ApiKey,
        body: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        url = self.url_for(endpoint)
        logger.debug("POST %s", url)
        try:
            response = await self._client.post(
                url,
                params={"key": api_key.value},
                json=dict(body),
                headers=dict(headers or {}),
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {endpoint.value} failed: {exc}") from exc

        if response.is_success:
            return self._decode_object(response)
        raise self._error_from_response(response)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def url_for(self, endpoint: Endpoint) -> str:
        if endpoint is Endpoint.TOKEN:
            return f"{self._secure_token_url}/{endpoint.value}"
        return f"{self._identity_toolkit_url}/{endpoint.value}"

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _decode_object(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ResponseDecodeError(
                f"Response is not JSON: {exc}", response.text
            ) from exc
        if not isinstance(payload, dict):
            raise ResponseDecodeError("Response is not a JSON object", response.text)
        return payload

    def _error_from_response(self, response: httpx.Response) -> Exception:
        payload = self._decode_object(response)
        error = payload.get("error")
        if not isinstance(error, dict) or not isinstance(error.get("message"), str):
            return ResponseDecodeError(
                f"Unexpected error body (status {response.status_code})",
                response.text,
            )

        message = error["message"]
        code = ApiErrorCode.from_message(message)
        if code is ApiErrorCode.INVALID_ID_TOKEN:
            return InvalidIdentityTokenError(message)

        logger.debug("Identity service error %s: %s", response.status_code, message)
        return ApiError(
            status_code=response.status_code,
            error_code=code,
            message=message,
            body=payload,
        )
