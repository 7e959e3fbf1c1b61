"""Single-delivery result channel shared by every network operation."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from stackdelivery.exceptions import DeliveryError

T = TypeVar("T")

# callback(result, error): exactly one of the two is not None.
ResultCallback = Callable[[Optional[Any], Optional[DeliveryError]], Any]


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """What a network operation resolved to: a value or an error, never both."""

    value: Optional[T] = None
    error: Optional[DeliveryError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle(
    run: Callable[[], Awaitable[T]],
    callback: Optional[ResultCallback],
    logger: logging.Logger,
) -> Outcome[T]:
    """Await ``run`` and hand its result or error to ``callback`` exactly once.

    Only ``DeliveryError`` is converted into an error value; anything else is a
    bug and propagates. Exceptions raised by the callback itself propagate too.
    """
    try:
        value = await run()
    except DeliveryError as exc:
        logger.warning("request failed: %s (code=%s)", exc.error_message, exc.error_code)
        outcome: Outcome[T] = Outcome(error=exc)
    else:
        outcome = Outcome(value=value)
    if callback is not None:
        ret = callback(outcome.value, outcome.error)
        if inspect.isawaitable(ret):
            await ret
    return outcome
