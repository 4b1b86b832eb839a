"""Debounce and throttle schedulers with a stable identity.

Both schedulers hold their callback in a
:class:`~pyfresh.cell.LatestCallbackCell`, so a pending invocation always
runs the callback registered most recently *as of the fire time*, never one
snapshotted when the call was scheduled.  The scheduler instance itself is
the trigger: it is callable and its identity never changes.

Each instance owns at most one alive timer.  Call :meth:`cancel` (or
:meth:`close`) when the owner is torn down so nothing fires against it.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from pyfresh._timer import LoopTimer, TimerFacility, TimerHandle
from pyfresh.cell import LatestCallbackCell
from pyfresh.exceptions import FreshConfigError

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ScheduledInvocation:
    """A pending timer together with the arguments it will replay."""

    due: float
    args: tuple[Any, ...]
    kwargs: dict[str, Any] = field(default_factory=dict)
    handle: TimerHandle | None = None


class ScheduledCallback:
    """Shared lifecycle for :class:`Debouncer` and :class:`Throttler`."""

    def __init__(self, callback: Callable[..., Any], *, timer: TimerFacility | None = None) -> None:
        self._cell = LatestCallbackCell(callback)
        self._timer: TimerFacility = timer if timer is not None else LoopTimer()
        self._pending: ScheduledInvocation | None = None
        self._tasks: set[asyncio.Future[Any]] = set()
        self._closed = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        if self._closed:
            _logger.debug("Ignoring call on closed %s", type(self).__name__)
            return
        self._on_call(args, kwargs)

    def register(self, callback: Callable[..., Any]) -> None:
        """Refresh the callback that the next invocation will run."""
        self._cell.register(callback)

    @property
    def pending(self) -> ScheduledInvocation | None:
        return self._pending

    @property
    def is_closed(self) -> bool:
        return self._closed

    def cancel(self) -> None:
        """Disarm the outstanding timer, if any.  It will never fire."""
        invocation = self._pending
        self._pending = None
        if invocation is not None and invocation.handle is not None:
            self._timer.cancel(invocation.handle)

    def flush(self) -> Any:
        """Run the pending invocation now instead of at its due time.

        Returns the callback's result, or ``None`` when nothing was pending.
        """
        invocation = self._pending
        if invocation is None or self._closed:
            return None
        self.cancel()
        self._mark_fired()
        return self._invoke(invocation.args, invocation.kwargs)

    def close(self) -> None:
        """Cancel the timer and any running async callback, then go inert."""
        self.cancel()
        self._closed = True
        self._cell.close()
        for task in list(self._tasks):
            task.cancel()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _on_call(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        raise NotImplementedError

    def _mark_fired(self) -> None:
        """Hook run just before a scheduled invocation executes."""

    def _arm(self, delay: float, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        invocation = ScheduledInvocation(due=self._timer.now() + delay, args=args, kwargs=kwargs)
        invocation.handle = self._timer.schedule(delay, functools.partial(self._fire, invocation))
        self._pending = invocation

    def _fire(self, invocation: ScheduledInvocation) -> None:
        # A timer that lost a race with cancel() must not run.
        if self._pending is not invocation or self._closed:
            return
        self._pending = None
        self._mark_fired()
        self._invoke(invocation.args, invocation.kwargs)

    def _invoke(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        result = self._cell.trigger(*args, **kwargs)
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)
        return result

    def _task_done(self, task: asyncio.Future[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            task.get_loop().call_exception_handler(
                {
                    "message": f"Unhandled exception in {type(self).__name__} callback",
                    "exception": exc,
                    "future": task,
                }
            )


class Debouncer(ScheduledCallback):
    """Collapse a burst of calls into one, fired after *delay* seconds of quiet.

    Only the last call of a burst is invoked, with that call's arguments.
    """

    def __init__(
        self,
        callback: Callable[..., Any],
        delay: float,
        *,
        timer: TimerFacility | None = None,
    ) -> None:
        if delay < 0:
            raise FreshConfigError("delay must be >= 0")
        super().__init__(callback, timer=timer)
        self._delay = float(delay)

    @property
    def delay(self) -> float:
        return self._delay

    def _on_call(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        self.cancel()
        self._arm(self._delay, args, kwargs)

    def __repr__(self) -> str:
        return f"<Debouncer delay={self._delay} pending={self._pending is not None}>"


class Throttler(ScheduledCallback):
    """Bound invocations to at most one per *interval* seconds.

    Policy:
    - leading edge: the first call in an open window fires immediately.
    - trailing edge: calls arriving inside a window are not lost; the last
      one fires once more when the window elapses.

    Either edge can be disabled, but not both.
    """

    def __init__(
        self,
        callback: Callable[..., Any],
        interval: float,
        *,
        leading: bool = True,
        trailing: bool = True,
        timer: TimerFacility | None = None,
    ) -> None:
        if interval < 0:
            raise FreshConfigError("interval must be >= 0")
        if not (leading or trailing):
            raise FreshConfigError("leading and trailing cannot both be disabled")
        super().__init__(callback, timer=timer)
        self._interval = float(interval)
        self._leading = leading
        self._trailing = trailing
        self._last_fired: float | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def leading(self) -> bool:
        return self._leading

    @property
    def trailing(self) -> bool:
        return self._trailing

    def _mark_fired(self) -> None:
        self._last_fired = self._timer.now()

    def _on_call(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        now = self._timer.now()
        window_open = self._last_fired is None or (now - self._last_fired) >= self._interval

        if window_open and self._pending is None and self._leading:
            self._last_fired = now
            self._invoke(args, kwargs)
            return

        if not self._trailing:
            _logger.debug("Dropping throttled call inside window")
            return

        if self._pending is not None:
            # Keep the latest arguments for the trailing edge.
            self._pending.args = args
            self._pending.kwargs = kwargs
            return

        if window_open or self._last_fired is None:
            delay = self._interval
        else:
            delay = self._interval - (now - self._last_fired)
        self._arm(delay, args, kwargs)

    def __repr__(self) -> str:
        return (
            f"<Throttler interval={self._interval} leading={self._leading} "
            f"trailing={self._trailing} pending={self._pending is not None}>"
        )
