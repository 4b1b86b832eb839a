"""Timer facility used by the debounce/throttle schedulers.

Schedulers only talk to the :class:`TimerFacility` protocol, which makes it
easy to pass a deterministic fake clock in tests while keeping the
production implementation (:class:`LoopTimer`) concrete.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    """A scheduled unit of work that can still be cancelled."""

    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class TimerFacility(Protocol):
    """Schedule and cancel delayed callbacks against a monotonic clock."""

    def now(self) -> float: ...

    def schedule(self, delay: float, fn: Callable[[], None]) -> TimerHandle: ...

    def cancel(self, handle: TimerHandle) -> None: ...


class LoopTimer:
    """Timer facility backed by an asyncio event loop.

    The loop is resolved lazily so a timer can be constructed outside a
    running loop (for example at import time) and used later inside one.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def schedule(self, delay: float, fn: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(delay, 0.0), fn)

    def cancel(self, handle: TimerHandle) -> None:
        handle.cancel()
