"""
Bounded and unbounded retry with backoff.

A :py:class:`RetryPolicy` wraps one external operation. It retries failures
accepted by its ``retry_on`` predicate, waits ``backoff(attempt)`` seconds
between attempts and re-raises the last failure once ``max_attempts`` is
used up. ``max_attempts=None`` retries forever.

Example::

    policy = host_conflict_policy()
    layer_id = policy.call(host.create_layer, "Custom Blend Result")
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from attrs import define, field

from formula_blend.constants import (
    HOST_CONFLICT_ATTEMPTS,
    HOST_CONFLICT_WAIT,
    PERSISTENCE_RETRY_BASE,
    PERSISTENCE_RETRY_CAP,
)
from formula_blend.exceptions import PersistenceWriteFailure, TransientHostConflict

logger = logging.getLogger(__name__)

T = TypeVar("T")


def fixed_backoff(seconds: float) -> Callable[[int], float]:
    """Wait the same time before every retry."""

    def backoff(attempt: int) -> float:
        return seconds

    return backoff


def capped_exponential_backoff(base: float, cap: float) -> Callable[[int], float]:
    """Wait ``base * 2**attempt`` seconds, never more than ``cap``."""

    def backoff(attempt: int) -> float:
        return min(base * 2**attempt, cap)

    return backoff


def _positive(instance: Any, attribute: Any, value: Optional[int]) -> None:
    if value is not None and value < 1:
        raise ValueError("%s must be at least 1, got %d" % (attribute.name, value))


@define(frozen=True)
class RetryPolicy:
    """
    Retry policy for an external operation.

    :param max_attempts: Total number of attempts, or None to never give up.
    :param backoff: Seconds to wait after the failed attempt number ``n``
        (starting at 0).
    :param retry_on: Predicate selecting the failures worth retrying; other
        exceptions propagate immediately.
    :param sleep: Blocking sleep used by :py:meth:`call`.
    """

    max_attempts: Optional[int] = field(validator=_positive)
    backoff: Callable[[int], float]
    retry_on: Callable[[BaseException], bool]
    sleep: Callable[[float], Any] = field(default=time.sleep, eq=False)

    def _should_retry(self, error: Exception, attempt: int) -> bool:
        if not self.retry_on(error):
            return False
        if self.max_attempts is not None and attempt + 1 >= self.max_attempts:
            logger.debug("Giving up after %d attempts: %s", attempt + 1, error)
            return False
        return True

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``func`` until it succeeds or the policy gives up."""
        attempt = 0
        while True:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if not self._should_retry(e, attempt):
                    raise
                wait = self.backoff(attempt)
                logger.warning(
                    "Attempt %d failed (%s), retrying in %gs", attempt + 1, e, wait
                )
                self.sleep(wait)
                attempt += 1

    async def call_async(
        self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        """Await ``func`` until it succeeds or the policy gives up."""
        attempt = 0
        while True:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                if not self._should_retry(e, attempt):
                    raise
                wait = self.backoff(attempt)
                logger.warning(
                    "Attempt %d failed (%s), retrying in %gs", attempt + 1, e, wait
                )
                await asyncio.sleep(wait)
                attempt += 1


def is_host_conflict(error: BaseException) -> bool:
    """True for modal-state conflicts reported by the host."""
    if isinstance(error, TransientHostConflict):
        return True
    return "modal state" in str(error).lower()


def is_write_failure(error: BaseException) -> bool:
    return isinstance(error, (OSError, PersistenceWriteFailure))


def host_conflict_policy(**kwargs: Any) -> RetryPolicy:
    """Three attempts, 0.6 seconds apart, on host modal-state conflicts."""
    kwargs.setdefault("max_attempts", HOST_CONFLICT_ATTEMPTS)
    kwargs.setdefault("backoff", fixed_backoff(HOST_CONFLICT_WAIT))
    kwargs.setdefault("retry_on", is_host_conflict)
    return RetryPolicy(**kwargs)


def persistence_write_policy(**kwargs: Any) -> RetryPolicy:
    """Retry preset writes forever, waiting 1, 2, 4, 8, 8, ... seconds."""
    kwargs.setdefault("max_attempts", None)
    kwargs.setdefault(
        "backoff",
        capped_exponential_backoff(PERSISTENCE_RETRY_BASE, PERSISTENCE_RETRY_CAP),
    )
    kwargs.setdefault("retry_on", is_write_failure)
    return RetryPolicy(**kwargs)
