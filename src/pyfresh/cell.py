"""Latest-callback cell.

A :class:`LatestCallbackCell` decouples *what to do* (a closure that is
rebuilt on every update of its owner and therefore captures fresh state)
from *how it is wired up* (a trigger whose identity never changes, so it can
be handed to memoized consumers and retained by timers).

Usage::

    cell = LatestCallbackCell()

    def update(state):
        # re-register on every update cycle, even if nothing changed
        cell.register(lambda: submit(state.form))
        return cell.trigger  # always the same object

Forgetting to call :meth:`LatestCallbackCell.register` on an update is a
contract violation, not a runtime error: the trigger keeps calling the last
registered closure.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

_logger = logging.getLogger(__name__)


class LatestCallbackCell:
    """Mutable slot holding the newest callback, plus a stable trigger."""

    __slots__ = ("_callback", "_live", "_on_error", "trigger")

    def __init__(
        self,
        callback: Callable[..., Any] | None = None,
        *,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self._callback = callback
        self._on_error = on_error
        self._live = True

        # Created exactly once; never rebound.
        def trigger(*args: Any, **kwargs: Any) -> Any:
            return self._invoke(args, kwargs)

        self.trigger: Callable[..., Any] = trigger

    def register(self, callback: Callable[..., Any]) -> None:
        """Replace the held callback."""
        self._callback = callback

    @property
    def callback(self) -> Callable[..., Any] | None:
        return self._callback

    @property
    def is_live(self) -> bool:
        return self._live

    def close(self) -> None:
        """Tear down the owning scope; later triggers become no-ops."""
        self._live = False
        self._callback = None

    def _invoke(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        callback = self._callback
        if not self._live or callback is None:
            _logger.debug("Ignoring trigger on %s cell", "closed" if not self._live else "empty")
            return None
        if self._on_error is None:
            return callback(*args, **kwargs)
        try:
            return callback(*args, **kwargs)
        except Exception as exc:
            self._on_error(exc)
            return None

    def __repr__(self) -> str:
        state = "live" if self._live else "closed"
        return f"<LatestCallbackCell {state} callback={self._callback!r}>"


def stable_callback(
    callback: Callable[..., Any],
    *,
    on_error: Callable[[Exception], None] | None = None,
) -> LatestCallbackCell:
    """Build a cell already holding *callback*."""
    return LatestCallbackCell(callback, on_error=on_error)
