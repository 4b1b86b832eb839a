"""Start several independent loads at once.

``fetch_all`` waits for every load before returning; ``fetch_each`` commits
each result the moment it arrives, so a fast load is never held back by a
slow one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pyfresh.exceptions import CancellationRequested, FetchFailure

_logger = logging.getLogger(__name__)

Loader = Callable[[], Awaitable[Any]]


def _as_failure(name: str, exc: Exception) -> FetchFailure:
    if isinstance(exc, FetchFailure):
        return exc
    failure = FetchFailure(f"Load {name!r} failed: {exc}", key=name)
    failure.__cause__ = exc
    return failure


async def _run_group(fetchers: Mapping[str, Loader], load: Callable[[str], Awaitable[None]]) -> None:
    try:
        async with asyncio.TaskGroup() as group:
            for name in fetchers:
                group.create_task(load(name), name=f"pyfresh-load-{name}")
    except ExceptionGroup as eg:
        # Loads only raise FetchFailure; surface the first one as-is.
        raise eg.exceptions[0]  # noqa: B904


async def fetch_all(fetchers: Mapping[str, Loader]) -> dict[str, Any]:
    """Run every loader concurrently and return all results by name.

    The first failure cancels the remaining loads and is raised as a
    :class:`FetchFailure`.  A load that raises :class:`CancellationRequested`
    is left out of the result.
    """
    results: dict[str, Any] = {}

    async def _load(name: str) -> None:
        try:
            results[name] = await fetchers[name]()
        except CancellationRequested:
            _logger.debug("Load %r cancelled itself; dropped", name)
        except Exception as exc:
            raise _as_failure(name, exc)  # noqa: B904

    loop = asyncio.get_running_loop()
    started = loop.time()
    await _run_group(fetchers, _load)
    _logger.debug("Loaded %d resource(s) in %.3fs", len(results), loop.time() - started)
    return {name: results[name] for name in fetchers if name in results}


async def fetch_each(
    fetchers: Mapping[str, Loader],
    on_result: Callable[[str, Any], None],
    *,
    on_error: Callable[[str, FetchFailure], None] | None = None,
) -> None:
    """Run every loader concurrently, committing each result as it arrives.

    Failures are passed to *on_error*.  Without a handler the first failure
    cancels the remaining loads and is raised.
    """

    async def _load(name: str) -> None:
        try:
            value = await fetchers[name]()
        except CancellationRequested:
            _logger.debug("Load %r cancelled itself; dropped", name)
            return
        except Exception as exc:
            failure = _as_failure(name, exc)
            if on_error is None:
                raise failure  # noqa: B904
            on_error(name, failure)
            return
        _logger.debug("Committed load %r", name)
        on_result(name, value)

    await _run_group(fetchers, _load)
