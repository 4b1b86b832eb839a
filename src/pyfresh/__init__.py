"""pyfresh - race-free keyed fetches and stable debounced callbacks for asyncio."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyfresh")
except PackageNotFoundError:
    __version__ = "0+local"
from pyfresh._timer import LoopTimer, TimerFacility, TimerHandle
from pyfresh.cell import LatestCallbackCell, stable_callback
from pyfresh.config import FreshConfig
from pyfresh.coordinator import KeyedRequestCoordinator, PendingRequest
from pyfresh.exceptions import (
    CancellationRequested,
    FetchFailure,
    FetchTransportError,
    FreshConfigError,
    FreshError,
    ScopeClosedError,
)
from pyfresh.http import HttpFetcher
from pyfresh.models import CommittedResult, RequestSnapshot, RequestStatus, SupersessionStrategy
from pyfresh.parallel import fetch_all, fetch_each
from pyfresh.scheduling import Debouncer, ScheduledCallback, ScheduledInvocation, Throttler
from pyfresh.scope import CallbackScope

__all__ = [
    "__version__",
    "CallbackScope",
    "CancellationRequested",
    "CommittedResult",
    "Debouncer",
    "FetchFailure",
    "FetchTransportError",
    "FreshConfig",
    "FreshConfigError",
    "FreshError",
    "HttpFetcher",
    "KeyedRequestCoordinator",
    "LatestCallbackCell",
    "LoopTimer",
    "PendingRequest",
    "RequestSnapshot",
    "RequestStatus",
    "ScheduledCallback",
    "ScheduledInvocation",
    "ScopeClosedError",
    "SupersessionStrategy",
    "Throttler",
    "TimerFacility",
    "TimerHandle",
    "fetch_all",
    "fetch_each",
    "stable_callback",
]
