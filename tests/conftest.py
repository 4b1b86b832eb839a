from __future__ import annotations

from collections.abc import Callable

import pytest


class FakeHandle:
    def __init__(self, due: float, order: int, fn: Callable[[], None]) -> None:
        self.due = due
        self.order = order
        self.fn = fn
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class FakeTimer:
    """Deterministic timer facility driven by ``advance()``."""

    def __init__(self) -> None:
        self._now = 0.0
        self._order = 0
        self._handles: list[FakeHandle] = []

    def now(self) -> float:
        return self._now

    def schedule(self, delay: float, fn: Callable[[], None]) -> FakeHandle:
        self._order += 1
        handle = FakeHandle(self._now + max(delay, 0.0), self._order, fn)
        self._handles.append(handle)
        return handle

    def cancel(self, handle: FakeHandle) -> None:
        handle.cancel()

    @property
    def armed(self) -> int:
        return sum(1 for h in self._handles if not h.cancelled())

    def advance(self, seconds: float) -> None:
        target = self._now + seconds
        while True:
            due = [h for h in self._handles if not h.cancelled() and h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.due, h.order))
            self._handles.remove(handle)
            self._now = handle.due
            handle.fn()
        self._handles = [h for h in self._handles if not h.cancelled()]
        self._now = target

    def advance_to(self, when: float) -> None:
        self.advance(when - self._now)


@pytest.fixture
def fake_timer() -> FakeTimer:
    return FakeTimer()
