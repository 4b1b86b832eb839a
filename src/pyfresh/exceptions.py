"""Custom exception hierarchy for pyfresh."""

from __future__ import annotations

from typing import Any


class FreshError(Exception):
    """Base exception for all pyfresh errors."""


class FreshConfigError(FreshError):
    """Invalid or missing configuration."""


class ScopeClosedError(FreshError):
    """A callback scope was used after it had been torn down."""


class FetchFailure(FreshError):
    """The fetch capability rejected for a real reason.

    This is the only failure that crosses the coordinator boundary.  The
    original error is available as ``__cause__``.
    """

    def __init__(self, message: str, *, key: Any = None) -> None:
        self.key = key
        super().__init__(message)


class FetchTransportError(FetchFailure):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        key: Any = None,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message, key=key)


class CancellationRequested(FreshError):  # noqa: N818
    """A fetch observed its cancellation signal and aborted.

    Raised by fetch capabilities that translate a cancellation request into
    their own failure path.  Coordinators absorb it; it is never reported as
    a :class:`FetchFailure`.
    """
