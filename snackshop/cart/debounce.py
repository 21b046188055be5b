"""Trailing-edge debounce on the running asyncio loop."""
import asyncio
from typing import Any, Awaitable, Callable, Optional

from snackshop.logging import get_logger
from snackshop.utils import maybe_await

logger = get_logger(__name__)


class Debouncer:
    """
    Holds at most one pending call and commits it after a quiet period.

    Each trigger() replaces the pending call and restarts the timer, so a
    burst of keystrokes results in a single callback with the last value.

    Usage:
        debouncer = Debouncer(0.3, engine.update_quantity)
        debouncer.trigger("sku-1", 4)
        await debouncer.flush()
    """

    def __init__(self, delay: float, callback: Callable[..., Any | Awaitable[Any]]):
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.delay = delay
        self._callback = callback
        self._args: tuple = ()
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self, *args: Any) -> None:
        """Schedule the callback with ``args``, dropping any pending call."""
        self._cancel_task()
        self._args = args
        self._task = asyncio.get_running_loop().create_task(self._run_later())

    async def flush(self) -> None:
        """Run the pending call now, if any."""
        if not self.pending:
            return
        self._cancel_task()
        await self._commit()

    def cancel(self) -> None:
        """Drop the pending call without running it."""
        self._cancel_task()
        self._args = ()

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run_later(self) -> None:
        await asyncio.sleep(self.delay)
        self._task = None
        await self._commit()

    async def _commit(self) -> None:
        args, self._args = self._args, ()
        try:
            await maybe_await(self._callback(*args))
        except Exception as e:
            logger.error(f"Debounced call failed: {e}", exc_info=True)
