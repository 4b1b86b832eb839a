"""Published state for request coordinators.

Snapshots are frozen pydantic models: subscribers may hold on to them
without observing later transitions.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pyfresh.exceptions import FetchFailure


class SupersessionStrategy(StrEnum):
    """How a coordinator decides that an in-flight request is no longer wanted."""

    SEQUENCE = "sequence"
    LIVENESS = "liveness"
    CANCEL = "cancel"


class RequestStatus(StrEnum):
    IDLE = "idle"
    FETCHING = "fetching"
    SETTLED = "settled"
    SUPERSEDED = "superseded"
    FAILED = "failed"


class RequestSnapshot(BaseModel):
    """Visible state of a coordinator.

    ``result`` is only populated when ``status`` is ``SETTLED`` and ``error``
    only when it is ``FAILED``.  ``SUPERSEDED`` never appears here: a
    superseded request has no visible effect.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    status: RequestStatus = RequestStatus.IDLE
    key: Any = None
    seq: int = 0
    result: Any = None
    error: FetchFailure | None = None

    @property
    def is_loading(self) -> bool:
        return self.status == RequestStatus.FETCHING


class CommittedResult(BaseModel):
    """The last fetch result accepted into visible state."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    key: Any
    seq: int
    value: Any
    committed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
