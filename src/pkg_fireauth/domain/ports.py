from __future__ import annotations

import time
from typing import Any, Awaitable, Mapping, Optional, Protocol, runtime_checkable

from .constants import Endpoint
from .value_objects import ApiKey


class Transport(Protocol):
    """
    Port for calling the identity service.

    Implementations live in the adapters layer (e.g. the httpx transport).
    """

    async def send(
        self,
        endpoint: Endpoint,
        api_key: ApiKey,
        body: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
    ) -> dict[str, Any]:
        """
        POST `body` to `endpoint` and return the decoded success payload.

        Should raise:
          - TransportError on network failure
          - ResponseDecodeError on a non-JSON body
          - InvalidIdentityTokenError when the service rejects the ID token
          - ApiError for any other structured error
        """
        ...


@runtime_checkable
class Clock(Protocol):
    """Callable returning seconds since the UNIX epoch."""

    def __call__(self) -> float: ...


class SleepFn(Protocol):
    """Awaitable delay, in seconds. `asyncio.sleep` satisfies it."""

    def __call__(self, seconds: float) -> Awaitable[None]: ...


def default_clock() -> float:
    return time.time()
