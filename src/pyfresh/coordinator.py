"""Keyed async request coordinator.

Given a key that changes while fetches are in flight, the coordinator issues
one fetch per key change and guarantees that only the result belonging to
the *current* key is ever committed, whatever order the fetches finish in.

Usage::

    async def load_issue(issue_id: str) -> dict[str, Any]:
        ...

    async with KeyedRequestCoordinator(load_issue, on_change=render) as issues:
        issues.set_key("1")
        issues.set_key("2")  # "1" is superseded; its result is dropped
        snapshot = await issues.wait()

Three supersession strategies satisfy the same contract:

``sequence``
    Compare the request's sequence number with the coordinator's.  Needs
    nothing from the fetch capability but cannot stop wasted work.
``liveness``
    Each request carries a ``live`` flag that is cleared on supersession.
``cancel``
    Cancel the request's task, propagating cancellation into the fetch
    capability.  Cancellation is acknowledged silently, never reported as a
    failure.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pyfresh.config import FreshConfig
from pyfresh.exceptions import CancellationRequested, FetchFailure, FreshConfigError, ScopeClosedError
from pyfresh.models import CommittedResult, RequestSnapshot, RequestStatus, SupersessionStrategy

_logger = logging.getLogger(__name__)

K = TypeVar("K")
R = TypeVar("R")

Listener = Callable[[RequestSnapshot], None]


@dataclass(slots=True)
class PendingRequest:
    """One in-flight fetch and its supersession markers."""

    key: Any
    seq: int
    live: bool = True
    cancel_requested: bool = False
    status: RequestStatus = RequestStatus.FETCHING
    task: asyncio.Task[None] | None = None


class KeyedRequestCoordinator(Generic[K, R]):
    """Issue fetches for a changing key and commit only the current one."""

    def __init__(
        self,
        fetch: Callable[[K], Awaitable[R]],
        *,
        strategy: SupersessionStrategy | str | None = None,
        config: FreshConfig | None = None,
        on_change: Listener | None = None,
    ) -> None:
        cfg = config if config is not None else FreshConfig()
        self._fetch = fetch
        try:
            self._strategy = SupersessionStrategy(strategy if strategy is not None else cfg.strategy)
        except ValueError as exc:
            raise FreshConfigError(f"Unknown supersession strategy {strategy!r}") from exc
        self._seq = 0
        self._key: K | None = None
        self._has_key = False
        self._active: PendingRequest | None = None
        self._inflight: set[asyncio.Task[None]] = set()
        self._snapshot = RequestSnapshot()
        self._committed: CommittedResult | None = None
        self._listeners: list[Listener] = []
        self._closed = False
        if on_change is not None:
            self._listeners.append(on_change)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> KeyedRequestCoordinator[K, R]:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.close()
        await self.drain()

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------

    @property
    def strategy(self) -> SupersessionStrategy:
        return self._strategy

    @property
    def key(self) -> K | None:
        return self._key

    @property
    def seq(self) -> int:
        return self._seq

    @property
    def snapshot(self) -> RequestSnapshot:
        return self._snapshot

    @property
    def committed(self) -> CommittedResult | None:
        return self._committed

    @property
    def active_request(self) -> PendingRequest | None:
        return self._active

    @property
    def is_closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state-transition listener; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def set_key(self, key: K) -> bool:
        """Make *key* the active key, fetching it if it changed.

        Must be called from within a running event loop.  Returns ``True``
        when a fetch was issued and ``False`` for a repeated key.
        """
        self._require_open()
        if self._has_key and key == self._key:
            _logger.debug("Key %r already active; no fetch issued", key)
            return False
        # Raises outside a running loop; the active key must stay untouched.
        loop = asyncio.get_running_loop()
        self._key = key
        self._has_key = True
        self._issue(loop, key)
        return True

    def refresh(self) -> bool:
        """Re-fetch the active key as a new request.  ``False`` when idle."""
        self._require_open()
        if not self._has_key:
            return False
        self._issue(asyncio.get_running_loop(), self._key)  # type: ignore[arg-type]
        return True

    async def wait(self) -> RequestSnapshot:
        """Wait until the newest request has finished, then return the snapshot.

        Keys set while waiting are followed; cancelling the waiter does not
        cancel the fetch.
        """
        while True:
            request = self._active
            task = request.task if request is not None else None
            if task is None or task.done():
                return self._snapshot
            await asyncio.wait({task})

    def close(self) -> None:
        """Tear down: no result may commit after this call."""
        if self._closed:
            return
        self._closed = True
        self._supersede(self._active)
        # Invalidate the sequence marker for any request still in flight.
        self._seq += 1
        self._listeners.clear()
        _logger.debug("Coordinator closed with %d request(s) in flight", len(self._inflight))

    async def drain(self) -> None:
        """Wait for every in-flight task, including superseded ones."""
        while self._inflight:
            await asyncio.wait(set(self._inflight))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_open(self) -> None:
        if self._closed:
            raise ScopeClosedError("Coordinator has been closed")

    def _issue(self, loop: asyncio.AbstractEventLoop, key: K) -> None:
        self._supersede(self._active)
        self._seq += 1
        request = PendingRequest(key=key, seq=self._seq)
        self._active = request
        _logger.debug("Fetching key=%r seq=%d (%s)", key, request.seq, self._strategy)

        # The task must exist before listeners run: one of them may set a
        # new key, and superseding needs something to cancel.
        task = loop.create_task(self._run(request), name=f"pyfresh-fetch-{request.seq}")
        request.task = task
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        self._publish(RequestSnapshot(status=RequestStatus.FETCHING, key=key, seq=request.seq))

    def _supersede(self, request: PendingRequest | None) -> None:
        if request is None or request.status != RequestStatus.FETCHING:
            return
        request.status = RequestStatus.SUPERSEDED
        if self._strategy == SupersessionStrategy.LIVENESS:
            request.live = False
        elif self._strategy == SupersessionStrategy.CANCEL:
            request.cancel_requested = True
            if request.task is not None and not request.task.done():
                request.task.cancel()
        _logger.debug("Superseded key=%r seq=%d", request.key, request.seq)

    def _is_current(self, request: PendingRequest) -> bool:
        if self._strategy == SupersessionStrategy.LIVENESS:
            return request.live
        if self._strategy == SupersessionStrategy.CANCEL:
            return not request.cancel_requested
        return request.seq == self._seq

    def _discard(self, request: PendingRequest, reason: str) -> None:
        request.status = RequestStatus.SUPERSEDED
        _logger.debug("Discarded key=%r seq=%d (%s)", request.key, request.seq, reason)

    def _abort(self, request: PendingRequest) -> None:
        # The fetch gave up on its own: back to idle so the same key can be set again.
        request.status = RequestStatus.IDLE
        self._active = None
        self._key = None
        self._has_key = False
        _logger.debug("Fetch for key=%r seq=%d cancelled itself", request.key, request.seq)
        self._publish(RequestSnapshot(status=RequestStatus.IDLE))

    async def _run(self, request: PendingRequest) -> None:
        if not self._is_current(request):
            # Superseded before it started, e.g. by a listener of its own snapshot.
            self._discard(request, "superseded before start")
            return
        try:
            result = await self._fetch(request.key)
        except asyncio.CancelledError:
            if request.cancel_requested:
                self._discard(request, "cancelled")
                return
            raise
        except CancellationRequested:
            if not self._is_current(request):
                self._discard(request, "cancelled by fetch")
                return
            self._abort(request)
            return
        except Exception as exc:
            if not self._is_current(request):
                self._discard(request, "failed after supersession")
                return
            self._fail(request, exc)
            return

        if not self._is_current(request):
            self._discard(request, "stale result")
            return

        request.status = RequestStatus.SETTLED
        self._committed = CommittedResult(key=request.key, seq=request.seq, value=result)
        _logger.debug("Committed key=%r seq=%d", request.key, request.seq)
        self._publish(
            RequestSnapshot(
                status=RequestStatus.SETTLED,
                key=request.key,
                seq=request.seq,
                result=result,
            )
        )

    def _fail(self, request: PendingRequest, exc: Exception) -> None:
        if isinstance(exc, FetchFailure):
            failure = exc
        else:
            failure = FetchFailure(f"Fetch for key {request.key!r} failed: {exc}", key=request.key)
            failure.__cause__ = exc
        request.status = RequestStatus.FAILED
        _logger.debug("Fetch failed for key=%r seq=%d: %s", request.key, request.seq, exc)
        self._publish(
            RequestSnapshot(
                status=RequestStatus.FAILED,
                key=request.key,
                seq=request.seq,
                error=failure,
            )
        )

    def _publish(self, snapshot: RequestSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            if self._snapshot is not snapshot:
                # A listener published a newer snapshot; the rest already saw it.
                break
            try:
                listener(snapshot)
            except Exception:
                _logger.warning("Coordinator listener failed", exc_info=True)
