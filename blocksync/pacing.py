"""Pacing helpers that keep long mutation runs from hogging the event loop.

Two independent mechanisms are provided:

- ``delay`` is a fixed throttle applied after each remote mutation, for
  backends that are rate limited or debounce writes.
- ``maybe_yield`` hands control back to the host scheduler every
  ``batch_size`` operations so a long pass does not starve other tasks
  sharing the loop (UI refreshes, other sync jobs).

Which yield to use is up to the embedding application: ``yield_to_host`` for
a shared loop, ``immediate_yield`` for headless runs where nobody else is
waiting.
"""

import asyncio
from typing import Awaitable, Callable

DEFAULT_MUTATION_DELAY_MS = 100
"""Default delay between backend mutations in milliseconds."""

DEFAULT_YIELD_BATCH_SIZE = 3
"""Default number of operations between cooperative yields."""

YieldFn = Callable[[], Awaitable[None]]


async def delay(ms: float) -> None:
    """Suspend for ``ms`` milliseconds."""
    await asyncio.sleep(ms / 1000)


async def yield_to_host() -> None:
    """Let every other ready task on the loop run before resuming."""
    await asyncio.sleep(0)


async def immediate_yield() -> None:
    """Yield that returns at once, for loops with no competing work."""
    return None


async def maybe_yield(
    operation_count: int,
    batch_size: int = DEFAULT_YIELD_BATCH_SIZE,
    yield_fn: YieldFn = yield_to_host,
) -> None:
    """Yield when ``operation_count`` is a multiple of ``batch_size``."""
    if operation_count % batch_size == 0:
        await yield_fn()


YIELD_MODES: dict[str, YieldFn] = {
    "defer": yield_to_host,
    "immediate": immediate_yield,
}


def get_yield_fn(mode: str) -> YieldFn:
    """Look up a yield implementation by its config name.

    Raises:
        ValueError: If the mode is unknown.
    """
    try:
        return YIELD_MODES[mode]
    except KeyError:
        raise ValueError(
            f"Unknown yield mode: {mode!r} (expected one of {', '.join(YIELD_MODES)})"
        ) from None
