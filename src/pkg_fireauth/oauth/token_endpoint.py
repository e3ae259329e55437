from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, Mapping, Optional, Tuple, Type

import httpx

from ..domain.entities import OAuthToken
from ..domain.exceptions import ProviderError
from ..domain.value_objects import AccessToken, RefreshToken
from ..log_utils import get_logger

logger = get_logger(__name__)

FORM_HEADERS = {"Accept": "application/json"}


async def post_form(
    client: httpx.AsyncClient,
    url: str,
    form: Mapping[str, str],
    *,
    error_cls: Type[ProviderError],
) -> Tuple[int, Dict[str, Any]]:
    """
    POST a form-encoded request to an IdP endpoint and decode the JSON
    object it answers with, whatever the status code.
    """
    logger.debug("POST %s", url)
    try:
        response = await client.post(url, data=dict(form), headers=FORM_HEADERS)
    except httpx.HTTPError as exc:
        raise error_cls(f"Request to {url} failed: {exc}") from exc
    return response.status_code, decode_object(response, error_cls=error_cls)


def decode_object(response: httpx.Response, *, error_cls: Type[ProviderError]) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise error_cls(
            "Response is not JSON",
            status_code=response.status_code,
            body=response.text,
        ) from exc
    if not isinstance(payload, dict):
        raise error_cls(
            "Response is not a JSON object",
            status_code=response.status_code,
            body=response.text,
        )
    return payload


def parse_expires_in(raw: Any) -> Optional[timedelta]:
    """
    Providers send `expires_in` as a number or as a decimal string.

    Raises ValueError for anything that is not a finite, non-negative
    number of seconds a timedelta can hold.
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValueError("expires_in must be numeric")
    try:
        seconds = int(raw) if isinstance(raw, str) and raw.isdigit() else int(float(raw))
        if seconds < 0:
            raise ValueError(f"expires_in must not be negative: {raw!r}")
        return timedelta(seconds=seconds)
    except (OverflowError, TypeError) as exc:
        raise ValueError(f"expires_in out of range: {raw!r}") from exc


def parse_token(
    status_code: int,
    payload: Mapping[str, Any],
    *,
    error_cls: Type[ProviderError],
) -> OAuthToken:
    """Build an OAuthToken from a successful token endpoint response."""
    access_token = payload.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        raise error_cls("No access_token in token response", status_code=status_code, body=payload)

    refresh_token = payload.get("refresh_token")
    try:
        expires_in = parse_expires_in(payload.get("expires_in"))
    except ValueError as exc:
        raise error_cls(
            f"Invalid expires_in in token response: {exc}",
            status_code=status_code,
            body=payload,
        ) from exc

    return OAuthToken(
        access_token=AccessToken(access_token),
        refresh_token=RefreshToken(refresh_token) if isinstance(refresh_token, str) else None,
        expires_in=expires_in,
    )
