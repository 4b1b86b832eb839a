"""Owning scope for stable callbacks and schedulers.

A :class:`CallbackScope` stands in for the lifetime of a view or component.
The owner calls the accessor methods on *every* update cycle, passing a
freshly built closure each time; the scope hands back the same trigger (or
the same scheduler) for as long as its configuration is unchanged::

    scope = CallbackScope()

    def update(state):
        on_submit = scope.stable("submit", lambda: send(state.form))
        autosave = scope.debounced("autosave", lambda: save(state.form), delay=0.5)
        return on_submit, autosave

    scope.close()  # on teardown: nothing fires afterwards
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable
from typing import Any, TypeVar

from pyfresh._timer import LoopTimer, TimerFacility
from pyfresh.cell import LatestCallbackCell
from pyfresh.config import FreshConfig
from pyfresh.exceptions import ScopeClosedError
from pyfresh.scheduling import Debouncer, ScheduledCallback, Throttler

_logger = logging.getLogger(__name__)

S = TypeVar("S", bound=ScheduledCallback)


class CallbackScope:
    """Registry of named cells and schedulers sharing one lifetime."""

    def __init__(
        self,
        *,
        timer: TimerFacility | None = None,
        config: FreshConfig | None = None,
    ) -> None:
        self._config = config if config is not None else FreshConfig()
        self._timer: TimerFacility = timer if timer is not None else LoopTimer()
        self._cells: dict[str, LatestCallbackCell] = {}
        self._schedulers: dict[str, tuple[Hashable, ScheduledCallback]] = {}
        self._closed = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> CallbackScope:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    @property
    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Kill every cell and cancel every pending timer."""
        if self._closed:
            return
        self._closed = True
        for cell in self._cells.values():
            cell.close()
        for _signature, scheduler in self._schedulers.values():
            scheduler.close()
        _logger.debug(
            "Closed scope with %d cell(s) and %d scheduler(s)",
            len(self._cells),
            len(self._schedulers),
        )

    # ------------------------------------------------------------------
    # Accessors (call once per update cycle)
    # ------------------------------------------------------------------

    def stable(self, name: str, callback: Callable[..., Any]) -> Callable[..., Any]:
        """Return the stable trigger for *name*, now forwarding to *callback*."""
        self._require_open()
        cell = self._cells.get(name)
        if cell is None:
            cell = LatestCallbackCell()
            self._cells[name] = cell
        cell.register(callback)
        return cell.trigger

    def debounced(
        self,
        name: str,
        callback: Callable[..., Any],
        delay: float | None = None,
    ) -> Debouncer:
        """Return the debouncer for *name*, recreated only when *delay* changes."""
        effective = self._config.debounce_delay if delay is None else delay
        return self._scheduler(
            name,
            ("debounce", effective),
            callback,
            lambda: Debouncer(callback, effective, timer=self._timer),
        )

    def throttled(
        self,
        name: str,
        callback: Callable[..., Any],
        interval: float | None = None,
        *,
        leading: bool | None = None,
        trailing: bool | None = None,
    ) -> Throttler:
        """Return the throttler for *name*, recreated only when its policy changes."""
        effective = self._config.throttle_interval if interval is None else interval
        lead = self._config.throttle_leading if leading is None else leading
        trail = self._config.throttle_trailing if trailing is None else trailing
        return self._scheduler(
            name,
            ("throttle", effective, lead, trail),
            callback,
            lambda: Throttler(callback, effective, leading=lead, trailing=trail, timer=self._timer),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_open(self) -> None:
        if self._closed:
            raise ScopeClosedError("Callback scope has been closed")

    def _scheduler(
        self,
        name: str,
        signature: Hashable,
        callback: Callable[..., Any],
        factory: Callable[[], S],
    ) -> S:
        self._require_open()
        entry = self._schedulers.get(name)
        if entry is not None:
            current_signature, scheduler = entry
            if current_signature == signature:
                scheduler.register(callback)
                return scheduler  # type: ignore[return-value]
            # Configuration changed: destroy, never reuse.
            _logger.debug("Recreating scheduler %r: %r -> %r", name, current_signature, signature)
            scheduler.close()

        created = factory()
        self._schedulers[name] = (signature, created)
        return created
