"""One-shot timer for delays longer than the scheduler's single-shot limit."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, Protocol

from relaymap.core.constants import MAX_DELAY_MS


class Cancellable(Protocol):
    def cancel(self) -> Any: ...


class Scheduler(Protocol):
    """Anything with asyncio's ``call_later(seconds, callback)`` shape."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> Cancellable: ...


class LongDelayTimer:
    """Run ``callback`` once after ``delay_ms`` milliseconds.

    Delays above ``max_delay_ms`` are split into a chain of waits of at most
    ``max_delay_ms`` each; only the last wake-up invokes the callback, so the
    total wait equals the requested delay. ``cancel()`` stops whichever chunk
    is currently pending.
    """

    def __init__(
        self,
        delay_ms: float,
        callback: Callable[[], Any],
        *,
        scheduler: Scheduler | None = None,
        max_delay_ms: int = MAX_DELAY_MS,
    ) -> None:
        if max_delay_ms <= 0:
            raise ValueError("max_delay_ms must be positive")
        self._callback = callback
        self._scheduler: Scheduler = scheduler if scheduler is not None else asyncio.get_running_loop()
        self._max_delay_ms = max_delay_ms
        self._remaining_ms = max(0, int(delay_ms))
        self._handle: Cancellable | None = None
        self._cancelled = False
        self._fired = False
        self._schedule_next()

    @property
    def remaining_ms(self) -> int:
        """Delay still to be scheduled after the pending chunk."""
        return self._remaining_ms

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def pending(self) -> bool:
        return not (self._cancelled or self._fired)

    def cancel(self) -> None:
        """Stop the chain. No-op once fired."""
        if not self.pending:
            return
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule_next(self) -> None:
        chunk = min(self._remaining_ms, self._max_delay_ms)
        self._remaining_ms -= chunk
        self._handle = self._scheduler.call_later(chunk / 1000, self._wake)

    def _wake(self) -> None:
        self._handle = None
        if self._cancelled:
            return
        if self._remaining_ms > 0:
            self._schedule_next()
            return
        self._fired = True
        self._callback()
