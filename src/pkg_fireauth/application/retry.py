from __future__ import annotations

from typing import Awaitable, Callable, Tuple, TypeVar

from ..domain.exceptions import InvalidIdentityTokenError
from ..log_utils import get_logger

logger = get_logger(__name__)

RETRY_ATTEMPTS = 1

S = TypeVar("S")
T = TypeVar("T")


async def with_retry(
    session: S,
    operation: Callable[[S], Awaitable[T]],
    refresh: Callable[[S], Awaitable[S]],
    *,
    max_attempts: int = RETRY_ATTEMPTS,
) -> Tuple[S, T]:
    """
    Run `operation` with `session`, refreshing the session and retrying
    when the identity token is rejected.

    Returns the session the operation finally succeeded with, and its
    result.

    Only InvalidIdentityTokenError triggers a retry. After `max_attempts`
    refreshes the last InvalidIdentityTokenError is raised to the caller.
    A failing `refresh` propagates immediately and is never retried.
    The attempt counter lives for this call only.
    """
    attempts = 0
    current = session
    while True:
        try:
            result = await operation(current)
        except InvalidIdentityTokenError:
            if attempts >= max_attempts:
                raise
            attempts += 1
            logger.warning(
                "Identity token rejected, refreshing session (attempt %d/%d)",
                attempts,
                max_attempts,
            )
            current = await refresh(current)
            continue
        return current, result
