import asyncio

from sourcelens.core.scheduling import AsyncioScheduler, ScheduledTask


def test_burst_of_schedules_runs_once_after_quiet_period(scheduler):
    calls = []
    task = ScheduledTask(scheduler, 500, lambda: calls.append(scheduler.now), name="scan")

    task.schedule()
    scheduler.advance(300)
    task.schedule()
    scheduler.advance(300)
    task.schedule()

    assert calls == []
    assert task.pending

    scheduler.advance(500)

    assert calls == [1100]
    assert task.run_count == 1
    assert not task.pending


def test_series_runs_at_each_delay(scheduler):
    calls = []
    task = ScheduledTask(scheduler, 0, lambda: calls.append(scheduler.now), name="initial")

    task.schedule_series([200, 1000, 2500])
    scheduler.advance(1000)
    assert calls == [200, 1000]
    assert task.pending

    scheduler.advance(5000)
    assert calls == [200, 1000, 2500]
    assert not task.pending


def test_cancel_drops_pending_runs(scheduler):
    calls = []
    task = ScheduledTask(scheduler, 100, lambda: calls.append(1))

    task.schedule_series([10, 20])
    task.cancel()
    scheduler.advance(1000)

    assert calls == []
    assert not task.pending


def test_callback_errors_are_logged(scheduler, caplog):
    def boom():
        raise RuntimeError("scan exploded")

    task = ScheduledTask(scheduler, 10, boom, name="scan")
    task.schedule()

    with caplog.at_level("ERROR", logger="sourcelens.core.scheduling"):
        scheduler.advance(10)

    assert task.run_count == 1
    assert any("Scheduled task 'scan' failed" in r.getMessage() for r in caplog.records)


def test_asyncio_scheduler_fires_on_running_loop():
    calls = []

    async def scenario():
        task = ScheduledTask(AsyncioScheduler(), 10, lambda: calls.append("ran"))
        task.schedule()
        task.schedule()
        await asyncio.sleep(0.05)
        return task.run_count

    assert asyncio.run(scenario()) == 1
    assert calls == ["ran"]
