import asyncio

import pytest

from session_keeper.maintenance import PeriodicPass


def test_periodic_pass_survives_failures_and_keeps_last_result():
    calls = []
    delivered = []

    def run_pass():
        calls.append(len(calls))
        if len(calls) == 1:
            raise RuntimeError("first run fails")
        return len(calls)

    periodic = PeriodicPass("test-pass", run_pass, 0.01, on_result=delivered.append)

    async def run():
        periodic.start()
        periodic.start()
        assert periodic.running
        await asyncio.sleep(0.08)
        await periodic.stop()

    asyncio.run(run())

    assert periodic.failures == 1
    assert periodic.runs == len(calls) - 1 >= 1
    assert periodic.last_result == len(calls)
    assert delivered == list(range(2, len(calls) + 1))
    assert periodic.running is False


def test_run_once_contains_callback_errors():
    def on_result(result):
        raise ValueError("observer broke")

    periodic = PeriodicPass("test-pass", lambda: "report", 60, on_result=on_result)

    assert periodic.run_once() == "report"
    assert periodic.runs == 1
    assert periodic.last_result == "report"


def test_stop_before_start_is_a_no_op():
    periodic = PeriodicPass("test-pass", lambda: None, 60)

    asyncio.run(periodic.stop())

    assert periodic.running is False


def test_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        PeriodicPass("test-pass", lambda: None, 0)
