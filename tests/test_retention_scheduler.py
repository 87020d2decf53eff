import asyncio
from datetime import datetime

import pytest

from writify.core.errors import SweepFailed
from writify.services.retention import SweepResult
from writify.services.retention_scheduler import RetentionScheduler, seconds_until_next_run


class FakeSweep:
    def __init__(self, error=None):
        self.error = error
        self.calls = 0

    def run(self, now=None):
        self.calls += 1
        if self.error:
            raise self.error
        return SweepResult(cutoff=datetime(2026, 4, 17))


@pytest.mark.parametrize("now, expected", [
    (datetime(2026, 10, 17, 23, 0, 0), 3600),
    (datetime(2026, 10, 17, 0, 0, 0), 86400),
    (datetime(2026, 12, 31, 23, 59, 30), 30),
])
def test_seconds_until_next_midnight(now, expected):
    assert seconds_until_next_run(now) == expected


def test_run_once_returns_sweep_result():
    sweep = FakeSweep()
    scheduler = RetentionScheduler(sweep)

    result = asyncio.run(scheduler.run_once())

    assert sweep.calls == 1
    assert result.skipped is False


def test_failed_run_is_logged_not_raised():
    sweep = FakeSweep(error=SweepFailed("Retention sweep failed: boom"))
    scheduler = RetentionScheduler(sweep)

    assert asyncio.run(scheduler.run_once()) is None
    assert sweep.calls == 1


def test_startup_run_fires_after_delay():
    sweep = FakeSweep()
    scheduler = RetentionScheduler(sweep, run_on_startup=True, startup_delay=0)

    async def scenario():
        await scheduler.start()
        for _ in range(50):
            if sweep.calls:
                break
            await asyncio.sleep(0.01)
        await scheduler.stop()

    asyncio.run(scenario())

    assert sweep.calls == 1


def test_startup_error_does_not_stop_the_loop():
    sweep = FakeSweep(error=RuntimeError("unexpected"))
    scheduler = RetentionScheduler(sweep, run_on_startup=True, startup_delay=0)

    async def scenario():
        await scheduler.start()
        for _ in range(50):
            if sweep.calls:
                break
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.01)
        alive = not scheduler._task.done()
        await scheduler.stop()
        return alive

    assert asyncio.run(scenario()) is True
    assert sweep.calls == 1
