from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

from ..domain.exceptions import ContinuePolling, PollingTimeoutError
from ..domain.ports import Clock, SleepFn
from ..log_utils import get_logger

logger = get_logger(__name__)

SLOW_DOWN_STEP_SECONDS = 5.0
MIN_INTERVAL_SECONDS = 1.0

T = TypeVar("T")


async def poll(
    attempt: Callable[[], Awaitable[T]],
    *,
    interval: float,
    deadline: float,
    timeout: float,
    clock: Clock,
    sleep_fn: SleepFn,
) -> T:
    """
    Call `attempt` until it returns, sleeping `interval` seconds each time
    it raises ContinuePolling. Intervals below MIN_INTERVAL_SECONDS are
    raised to it.

    `deadline` is an absolute `clock()` value. A sleep that would end past
    it is not started; PollingTimeoutError is raised instead. Any other
    exception from `attempt` propagates unchanged.
    """
    interval = max(interval, MIN_INTERVAL_SECONDS)
    iteration = 0
    while True:
        if clock() >= deadline:
            raise PollingTimeoutError(timeout)
        iteration += 1
        try:
            return await attempt()
        except ContinuePolling as signal:
            if signal.slow_down:
                interval += SLOW_DOWN_STEP_SECONDS
            if clock() + interval > deadline:
                raise PollingTimeoutError(timeout) from None
            logger.debug("Authorization pending (poll %d), retrying in %ss", iteration, interval)
            await sleep_fn(interval)
