#!/usr/bin/env python3
"""Replay the classic "fast clicking" race against every strategy.

Issue ids are selected one after another while their (simulated) fetches
finish in reverse order.  Each supersession strategy must end up showing the
last selected issue.  A debounce burst is replayed afterwards.

Usage
-----
::

    python scripts/race_demo.py
    python scripts/race_demo.py --latency 1=2.0 --latency 2=0.6 --latency 3=0.1 -v

Options::

    --latency KEY=SECONDS   Simulated latency per key (repeatable)
    --strategy NAME         Only run this strategy (sequence, liveness, cancel)
    --verbose, -v           Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyfresh import (  # noqa: E402
    Debouncer,
    KeyedRequestCoordinator,
    RequestSnapshot,
    RequestStatus,
    SupersessionStrategy,
)

_DEFAULT_LATENCY = {"1": 0.4, "2": 0.12, "3": 0.02}

_ISSUES = {
    "1": {"id": "ISSUE-1", "title": "Login Bug"},
    "2": {"id": "ISSUE-2", "title": "Dashboard Crash"},
    "3": {"id": "ISSUE-3", "title": "Payment Failed"},
}


def _parse_latency(values: list[str] | None) -> dict[str, float]:
    if not values:
        return dict(_DEFAULT_LATENCY)
    latency: dict[str, float] = {}
    for item in values:
        key, _, seconds = item.partition("=")
        if not key or not seconds:
            raise SystemExit(f"Invalid --latency value {item!r}; expected KEY=SECONDS")
        latency[key] = float(seconds)
    return latency


async def _run_strategy(strategy: SupersessionStrategy, latency: dict[str, float]) -> bool:
    async def fetch(key: str) -> dict[str, str]:
        await asyncio.sleep(latency[key])
        return _ISSUES.get(key, {"id": f"ISSUE-{key}", "title": "Unknown"})

    def render(snapshot: RequestSnapshot) -> None:
        if snapshot.status == RequestStatus.FETCHING:
            print(f"  [{strategy}] loading issue {snapshot.key}…")
        elif snapshot.status == RequestStatus.SETTLED:
            print(f"  [{strategy}] showing {snapshot.result}")
        elif snapshot.status == RequestStatus.FAILED:
            print(f"  [{strategy}] error: {snapshot.error}")

    async with KeyedRequestCoordinator(fetch, strategy=strategy, on_change=render) as issues:
        for key in latency:
            issues.set_key(key)
            await asyncio.sleep(0.001)
        snapshot = await issues.wait()

    expected = list(latency)[-1]
    ok = snapshot.key == expected and snapshot.status == RequestStatus.SETTLED
    print(f"  [{strategy}] {'OK' if ok else 'STALE'}: final key {snapshot.key!r}, expected {expected!r}")
    return ok


async def _run_debounce() -> None:
    fired: list[str] = []
    done = asyncio.Event()

    def send(payload: str) -> None:
        fired.append(payload)
        done.set()

    debounced = Debouncer(send, 0.05)
    for payload in ("A", "B", "C", "D"):
        debounced(payload)
        await asyncio.sleep(0.01)
    await asyncio.wait_for(done.wait(), timeout=1.0)
    print(f"  [debounce] fired {len(fired)} time(s) with {fired}")


async def main() -> int:
    parser = argparse.ArgumentParser(description="Replay keyed fetch races against each strategy.")
    parser.add_argument("--latency", action="append", help="Simulated latency KEY=SECONDS (repeatable)")
    parser.add_argument("--strategy", choices=[s.value for s in SupersessionStrategy], help="Only run this strategy")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    latency = _parse_latency(args.latency)
    strategies = [SupersessionStrategy(args.strategy)] if args.strategy else list(SupersessionStrategy)

    all_ok = True
    for strategy in strategies:
        all_ok &= await _run_strategy(strategy, latency)
    await _run_debounce()
    return 0 if all_ok else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
