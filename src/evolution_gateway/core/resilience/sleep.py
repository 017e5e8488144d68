"""Sleeping that honors a cooperative cancellation signal."""

import asyncio
from typing import Optional

from evolution_gateway.core.resilience.models import SleepFunc


async def interruptible_sleep(
    seconds: float,
    *,
    sleep_func: Optional[SleepFunc] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> bool:
    """Sleep for ``seconds`` unless ``cancel_event`` fires first.

    Native task cancellation is not intercepted: ``asyncio.CancelledError``
    propagates after the helper tasks are cleaned up.

    Returns:
        True if the full sleep completed, False if cancellation fired.
    """
    _sleep = sleep_func or asyncio.sleep

    if cancel_event is None:
        await _sleep(seconds)
        return True
    if cancel_event.is_set():
        return False

    sleeper = asyncio.ensure_future(_sleep(seconds))
    watcher = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({sleeper, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sleeper, watcher):
            if not task.done():
                task.cancel()
        await asyncio.gather(sleeper, watcher, return_exceptions=True)

    if not sleeper.cancelled() and sleeper.exception() is not None:
        raise sleeper.exception()  # type: ignore[misc]
    return not cancel_event.is_set()
