from __future__ import annotations

import pytest

from pyfresh.cell import LatestCallbackCell, stable_callback


def test_trigger_identity_survives_many_registrations() -> None:
    cell = LatestCallbackCell()
    trigger = cell.trigger

    for i in range(50):
        cell.register(lambda i=i: i)
        assert cell.trigger is trigger


def test_trigger_runs_most_recently_registered_callback() -> None:
    cell = LatestCallbackCell()
    calls: list[str] = []

    cell.register(lambda: calls.append("cb1"))
    cell.register(lambda: calls.append("cb2"))
    cell.trigger()

    assert calls == ["cb2"]


def test_trigger_forwards_arguments_and_returns_result() -> None:
    cell = stable_callback(lambda a, *, b: a + b)
    assert cell.trigger(2, b=3) == 5


def test_trigger_reads_state_at_invocation_time() -> None:
    state = {"count": 0}
    cell = LatestCallbackCell()

    # Simulate three update cycles, each capturing a fresh snapshot.
    for _ in range(3):
        snapshot = state["count"]
        cell.register(lambda snapshot=snapshot: snapshot)
        state["count"] += 1

    assert cell.trigger() == 2


def test_trigger_before_registration_is_a_noop() -> None:
    cell = LatestCallbackCell()
    assert cell.trigger("ignored") is None


def test_trigger_after_close_is_a_noop() -> None:
    calls: list[int] = []
    cell = stable_callback(lambda: calls.append(1))
    trigger = cell.trigger

    cell.close()

    assert trigger() is None
    assert calls == []
    assert not cell.is_live


def test_callback_exception_propagates_without_error_handler() -> None:
    def boom() -> None:
        raise RuntimeError("boom")

    cell = stable_callback(boom)
    with pytest.raises(RuntimeError, match="boom"):
        cell.trigger()


def test_callback_exception_routed_to_error_handler() -> None:
    errors: list[Exception] = []

    def boom() -> None:
        raise ValueError("bad input")

    cell = LatestCallbackCell(boom, on_error=errors.append)

    assert cell.trigger() is None
    assert len(errors) == 1
    assert isinstance(errors[0], ValueError)
