"""Tests for the maintenance scheduler."""

import asyncio
from datetime import datetime, timedelta

import pytest

from zenith.maintenance.scheduler import MaintenanceScheduler, calculate_next_run
from zenith.models.domain.maintenance import (
    MaintenanceResult,
    MaintenanceTaskDefinition,
)
from zenith.types import Frequency, Priority

START = datetime(2024, 5, 6, 10, 0)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def make_task(
    task_id: str,
    calls: list[str],
    frequency: Frequency = Frequency.HOURLY,
    priority: Priority = Priority.MEDIUM,
    enabled: bool = True,
    error: Exception | None = None,
    success: bool = True,
) -> MaintenanceTaskDefinition:
    async def job() -> MaintenanceResult:
        calls.append(task_id)
        if error is not None:
            raise error
        return MaintenanceResult(success=success, message=f"{task_id} done")

    return MaintenanceTaskDefinition(
        id=task_id,
        name=task_id.replace("_", " ").title(),
        description=f"Test task {task_id}",
        frequency=frequency,
        priority=priority,
        estimated_duration=1,
        enabled_by_default=enabled,
        run=job,
    )


class TestCalculateNextRun:
    @pytest.mark.parametrize(
        "frequency, expected",
        [
            (Frequency.HOURLY, datetime(2024, 5, 6, 11, 0)),
            (Frequency.DAILY, datetime(2024, 5, 7, 10, 0)),
            (Frequency.WEEKLY, datetime(2024, 5, 13, 10, 0)),
            (Frequency.MONTHLY, datetime(2024, 6, 6, 10, 0)),
        ],
    )
    def test_frequencies(self, frequency: Frequency, expected: datetime) -> None:
        assert calculate_next_run(frequency, START) == expected

    def test_accepts_string(self) -> None:
        assert calculate_next_run("daily", START) == datetime(2024, 5, 7, 10, 0)

    def test_monthly_overflow(self) -> None:
        assert calculate_next_run(
            Frequency.MONTHLY, datetime(2023, 1, 31, 9, 0)
        ) == datetime(2023, 3, 3, 9, 0)

    @pytest.mark.parametrize(
        "frequency", [Frequency.HOURLY, Frequency.DAILY, Frequency.WEEKLY]
    )
    @pytest.mark.parametrize(
        "earlier, later",
        [
            (datetime(2023, 1, 31, 9, 0), datetime(2023, 2, 1, 9, 0)),
            (datetime(2024, 2, 28, 23, 59), datetime(2024, 2, 29, 0, 0)),
            (START, START + timedelta(seconds=1)),
        ],
    )
    def test_later_base_gives_later_run(
        self, frequency: Frequency, earlier: datetime, later: datetime
    ) -> None:
        assert calculate_next_run(frequency, later) > calculate_next_run(
            frequency, earlier
        )

    def test_monthly_is_not_monotonic_across_month_end(self) -> None:
        """Day overflow lets a later base land on an earlier next run."""
        jan_31 = calculate_next_run(Frequency.MONTHLY, datetime(2023, 1, 31, 9, 0))
        feb_1 = calculate_next_run(Frequency.MONTHLY, datetime(2023, 2, 1, 9, 0))

        assert jan_31 == datetime(2023, 3, 3, 9, 0)
        assert feb_1 == datetime(2023, 3, 1, 9, 0)
        assert feb_1 < jan_31

    @pytest.mark.parametrize("frequency", list(Frequency))
    def test_next_run_after_base(self, frequency: Frequency) -> None:
        for base in (datetime(2023, 1, 31, 9, 0), datetime(2024, 2, 29), START):
            assert calculate_next_run(frequency, base) > base

    def test_unknown_frequency(self) -> None:
        with pytest.raises(ValueError):
            calculate_next_run("fortnightly", START)

    def test_defaults_to_now(self) -> None:
        before = datetime.now()
        next_run = calculate_next_run(Frequency.HOURLY)
        assert next_run >= before + timedelta(hours=1)


class TestSchedulerConstruction:
    def test_initial_schedule(self) -> None:
        calls: list[str] = []
        scheduler = MaintenanceScheduler(
            [
                make_task("hourly", calls, Frequency.HOURLY),
                make_task("daily", calls, Frequency.DAILY),
                make_task("monthly", calls, Frequency.MONTHLY),
            ],
            clock=FakeClock(),
        )

        tasks = {task.id: task for task in scheduler.get_tasks()}
        assert tasks["hourly"].next_run == START + timedelta(hours=1)
        assert tasks["daily"].next_run == START + timedelta(days=1)
        assert tasks["monthly"].next_run == datetime(2024, 6, 6, 10, 0)
        assert all(task.last_run is None for task in tasks.values())
        assert scheduler.task_ids == ["hourly", "daily", "monthly"]
        assert calls == []

    def test_disabled_by_default(self) -> None:
        scheduler = MaintenanceScheduler(
            [make_task("off", [], enabled=False)], clock=FakeClock()
        )

        task = scheduler.get_task("off")
        assert task is not None
        assert task.enabled is False

    def test_duplicate_ids(self) -> None:
        with pytest.raises(ValueError, match="Duplicate"):
            MaintenanceScheduler([make_task("a", []), make_task("a", [])])

    def test_get_unknown_task(self) -> None:
        assert MaintenanceScheduler().get_task("missing") is None


class TestDueTaskExecution:
    @pytest.mark.asyncio
    async def test_nothing_due(self) -> None:
        calls: list[str] = []
        scheduler = MaintenanceScheduler([make_task("a", calls)], clock=FakeClock())

        assert await scheduler.check_and_run_tasks() == []
        assert calls == []

    @pytest.mark.asyncio
    async def test_priority_order(self) -> None:
        calls: list[str] = []
        clock = FakeClock()
        scheduler = MaintenanceScheduler(
            [
                make_task("low", calls, priority=Priority.LOW),
                make_task("critical", calls, priority=Priority.CRITICAL),
                make_task("medium", calls, priority=Priority.MEDIUM),
                make_task("high", calls, priority=Priority.HIGH),
            ],
            clock=clock,
        )

        clock.advance(hours=2)
        results = await scheduler.check_and_run_tasks()

        assert calls == ["critical", "high", "medium", "low"]
        assert [r.message for r in results] == [
            "critical done",
            "high done",
            "medium done",
            "low done",
        ]

    @pytest.mark.asyncio
    async def test_only_due_tasks_run_in_priority_order(self) -> None:
        calls: list[str] = []
        clock = FakeClock()
        scheduler = MaintenanceScheduler(
            [
                make_task("daily_critical", calls, Frequency.DAILY, Priority.CRITICAL),
                make_task("hourly_low", calls, Frequency.HOURLY, Priority.LOW),
                make_task("hourly_high", calls, Frequency.HOURLY, Priority.HIGH),
            ],
            clock=clock,
        )

        clock.advance(minutes=61)
        await scheduler.check_and_run_tasks()
        assert calls == ["hourly_high", "hourly_low"]

    @pytest.mark.asyncio
    async def test_same_priority_ordered_by_next_run(self) -> None:
        calls: list[str] = []
        clock = FakeClock()
        scheduler = MaintenanceScheduler(
            [make_task("later", calls), make_task("earlier", calls)],
            clock=clock,
        )

        clock.advance(minutes=10)
        await scheduler.run_task_manually("later")
        calls.clear()

        clock.advance(hours=2)
        await scheduler.check_and_run_tasks()
        assert calls == ["earlier", "later"]

    @pytest.mark.asyncio
    async def test_task_due_exactly_at_next_run(self) -> None:
        calls: list[str] = []
        clock = FakeClock()
        scheduler = MaintenanceScheduler([make_task("a", calls)], clock=clock)

        clock.advance(hours=1)
        await scheduler.check_and_run_tasks()
        assert calls == ["a"]

    @pytest.mark.asyncio
    async def test_disabled_tasks_are_skipped(self) -> None:
        calls: list[str] = []
        clock = FakeClock()
        scheduler = MaintenanceScheduler(
            [make_task("on", calls), make_task("off", calls, enabled=False)],
            clock=clock,
        )

        clock.advance(hours=2)
        await scheduler.check_and_run_tasks()
        assert calls == ["on"]

        off = scheduler.get_task("off")
        assert off is not None
        assert off.last_run is None

        assert scheduler.set_task_enabled("off", True) is True
        await scheduler.check_and_run_tasks()
        assert calls == ["on", "off"]

    @pytest.mark.asyncio
    async def test_disabling_a_task(self) -> None:
        calls: list[str] = []
        clock = FakeClock()
        scheduler = MaintenanceScheduler([make_task("a", calls)], clock=clock)

        assert scheduler.set_task_enabled("a", False) is True
        clock.advance(days=3)
        assert await scheduler.check_and_run_tasks() == []

    def test_set_unknown_task_enabled(self) -> None:
        assert MaintenanceScheduler().set_task_enabled("missing", True) is False

    @pytest.mark.asyncio
    async def test_failing_task_does_not_stop_batch(self) -> None:
        calls: list[str] = []
        clock = FakeClock()
        scheduler = MaintenanceScheduler(
            [
                make_task(
                    "broken",
                    calls,
                    priority=Priority.CRITICAL,
                    error=RuntimeError("db down"),
                ),
                make_task("healthy", calls, priority=Priority.LOW),
            ],
            clock=clock,
        )

        clock.advance(hours=1, minutes=30)
        results = await scheduler.check_and_run_tasks()

        assert calls == ["broken", "healthy"]
        failed, succeeded = results
        assert failed.success is False
        assert failed.message == "Task failed: db down"
        assert failed.errors == ["db down"]
        assert failed.duration >= 0
        assert succeeded.success is True

        broken = scheduler.get_task("broken")
        assert broken is not None
        assert broken.last_run == clock.now
        assert broken.next_run == clock.now + timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_unsuccessful_result_still_reschedules(self) -> None:
        clock = FakeClock()
        scheduler = MaintenanceScheduler(
            [make_task("flaky", [], success=False)], clock=clock
        )

        clock.advance(hours=1)
        (result,) = await scheduler.check_and_run_tasks()

        assert result.success is False
        task = scheduler.get_task("flaky")
        assert task is not None
        assert task.last_run == clock.now
        assert task.next_run == clock.now + timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_overdue_task_runs_once(self) -> None:
        calls: list[str] = []
        clock = FakeClock()
        scheduler = MaintenanceScheduler([make_task("hourly", calls)], clock=clock)

        clock.advance(hours=5)
        await scheduler.check_and_run_tasks()
        await scheduler.check_and_run_tasks()

        assert calls == ["hourly"]
        task = scheduler.get_task("hourly")
        assert task is not None
        assert task.next_run == START + timedelta(hours=6)

    @pytest.mark.asyncio
    async def test_next_run_moves_forward(self) -> None:
        clock = FakeClock()
        scheduler = MaintenanceScheduler(
            [
                make_task("h", [], Frequency.HOURLY),
                make_task("d", [], Frequency.DAILY),
                make_task("w", [], Frequency.WEEKLY),
                make_task("m", [], Frequency.MONTHLY),
            ],
            clock=clock,
        )

        for _ in range(3):
            clock.advance(days=40)
            await scheduler.check_and_run_tasks()

            for task in scheduler.get_tasks():
                assert task.last_run == clock.now
                assert task.next_run is not None
                assert task.next_run > task.last_run

    @pytest.mark.asyncio
    async def test_result_duration_is_measured(self) -> None:
        async def slow_job() -> MaintenanceResult:
            await asyncio.sleep(0.02)
            return MaintenanceResult(success=True, message="slow", duration=99999)

        scheduler = MaintenanceScheduler(
            [
                MaintenanceTaskDefinition(
                    id="slow",
                    name="Slow",
                    description="Sleeps",
                    frequency=Frequency.DAILY,
                    priority=Priority.LOW,
                    estimated_duration=1,
                    run=slow_job,
                )
            ],
            clock=FakeClock(),
        )

        result = await scheduler.run_task_manually("slow")
        assert 10 <= result.duration < 99999
        assert scheduler.get_task_durations("slow") == [result.duration]


class TestManualRun:
    @pytest.mark.asyncio
    async def test_unknown_task(self) -> None:
        scheduler = MaintenanceScheduler([make_task("a", [])], clock=FakeClock())

        result = await scheduler.run_task_manually("missing")
        assert result.success is False
        assert result.message == "Task missing not found"
        assert result.duration == 0
        assert scheduler.get_last_maintenance_window() is None

    @pytest.mark.asyncio
    async def test_runs_disabled_task_before_due(self) -> None:
        calls: list[str] = []
        clock = FakeClock()
        scheduler = MaintenanceScheduler(
            [make_task("off", calls, Frequency.WEEKLY, enabled=False)], clock=clock
        )

        clock.advance(minutes=5)
        result = await scheduler.run_task_manually("off")

        assert result.success is True
        assert calls == ["off"]
        task = scheduler.get_task("off")
        assert task is not None
        assert task.enabled is False
        assert task.last_run == clock.now
        assert task.next_run == clock.now + timedelta(days=7)

    @pytest.mark.asyncio
    async def test_manual_failure_is_reported(self) -> None:
        scheduler = MaintenanceScheduler(
            [make_task("broken", [], error=ValueError("bad data"))], clock=FakeClock()
        )

        result = await scheduler.run_task_manually("broken")
        assert result.success is False
        assert result.errors == ["bad data"]


class TestInFlightGuard:
    @pytest.mark.asyncio
    async def test_running_task_is_not_due(self) -> None:
        calls: list[str] = []
        release = asyncio.Event()

        async def blocking_job() -> MaintenanceResult:
            calls.append("blocking")
            await release.wait()
            return MaintenanceResult(success=True, message="released")

        clock = FakeClock()
        scheduler = MaintenanceScheduler(
            [
                MaintenanceTaskDefinition(
                    id="blocking",
                    name="Blocking",
                    description="Waits for release",
                    frequency=Frequency.HOURLY,
                    priority=Priority.HIGH,
                    estimated_duration=1,
                    run=blocking_job,
                )
            ],
            clock=clock,
        )

        clock.advance(hours=2)
        first_tick = asyncio.create_task(scheduler.check_and_run_tasks())
        await asyncio.sleep(0)

        task = scheduler.get_task("blocking")
        assert task is not None
        assert task.in_progress is True
        assert scheduler.due_tasks() == []
        assert await scheduler.check_and_run_tasks() == []

        release.set()
        (result,) = await first_tick

        assert result.message == "released"
        assert calls == ["blocking"]
        task = scheduler.get_task("blocking")
        assert task is not None
        assert task.in_progress is False


class TestIntrospection:
    @pytest.mark.asyncio
    async def test_maintenance_windows(self) -> None:
        clock = FakeClock()
        scheduler = MaintenanceScheduler(
            [
                make_task("h", [], Frequency.HOURLY),
                make_task("d", [], Frequency.DAILY),
            ],
            clock=clock,
        )

        assert scheduler.get_last_maintenance_window() is None
        assert scheduler.get_next_maintenance_window() == START + timedelta(hours=1)

        clock.advance(hours=1)
        await scheduler.check_and_run_tasks()
        clock.advance(minutes=15)
        await scheduler.run_task_manually("d")

        assert scheduler.get_last_maintenance_window() == clock.now
        assert scheduler.get_next_maintenance_window() == START + timedelta(hours=2)

    def test_empty_scheduler(self) -> None:
        scheduler = MaintenanceScheduler(clock=FakeClock())

        assert scheduler.get_next_maintenance_window() is None
        stats = scheduler.get_maintenance_stats()
        assert stats.total_tasks == 0
        assert stats.average_task_duration == 0.0
        assert stats.last_maintenance_run is None

    @pytest.mark.asyncio
    async def test_schedule(self) -> None:
        scheduler = MaintenanceScheduler(
            [make_task("a", []), make_task("b", [], enabled=False)],
            clock=FakeClock(),
        )

        schedule = scheduler.get_schedule()
        assert [t.id for t in schedule.tasks] == ["a", "b"]
        assert schedule.is_running is False
        assert schedule.last_maintenance_window is None
        assert schedule.next_maintenance_window == START + timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_snapshots_do_not_change(self) -> None:
        clock = FakeClock()
        scheduler = MaintenanceScheduler([make_task("a", [])], clock=clock)

        before = scheduler.get_task("a")
        clock.advance(hours=1)
        await scheduler.check_and_run_tasks()

        assert before is not None
        assert before.last_run is None
        assert before.next_run == START + timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_maintenance_stats(self) -> None:
        clock = FakeClock()
        scheduler = MaintenanceScheduler(
            [
                make_task("a", []),
                make_task("b", [], Frequency.DAILY),
                make_task("c", [], enabled=False),
            ],
            clock=clock,
        )

        await scheduler.run_task_manually("b")
        clock.advance(days=1)
        await scheduler.run_task_manually("a")

        stats = scheduler.get_maintenance_stats()
        assert stats.total_tasks == 3
        assert stats.enabled_tasks == 2
        assert stats.tasks_run_today == 1
        assert stats.last_maintenance_run == clock.now

        durations = scheduler.get_task_durations("a") + scheduler.get_task_durations(
            "b"
        )
        assert stats.average_task_duration == pytest.approx(
            sum(durations) / len(durations)
        )

    @pytest.mark.asyncio
    async def test_duration_history_is_bounded(self) -> None:
        scheduler = MaintenanceScheduler(
            [make_task("a", [])], duration_history_size=3, clock=FakeClock()
        )

        for _ in range(5):
            await scheduler.run_task_manually("a")

        assert len(scheduler.get_task_durations("a")) == 3
        assert scheduler.get_task_durations("missing") == []


class TestSchedulerLifecycle:
    @pytest.mark.asyncio
    async def test_start_stop_idempotent(self) -> None:
        scheduler = MaintenanceScheduler([make_task("a", [])], clock=FakeClock())

        await scheduler.start()
        await scheduler.start()
        assert scheduler.is_running is True
        assert len(scheduler._loop_tasks) == 1

        await scheduler.stop()
        await scheduler.stop()
        assert scheduler.is_running is False

        await scheduler.wait_stopped()
        assert not scheduler._loop_tasks

    @pytest.mark.asyncio
    async def test_wait_stopped_while_running(self) -> None:
        scheduler = MaintenanceScheduler(
            [make_task("a", [])], tick_seconds=60, clock=FakeClock()
        )

        await scheduler.start()
        await asyncio.wait_for(scheduler.wait_stopped(), timeout=1)
        assert scheduler.is_running is True

        await scheduler.stop()
        await asyncio.wait_for(scheduler.wait_stopped(), timeout=1)
        assert not scheduler._loop_tasks

    @pytest.mark.asyncio
    async def test_stop_without_start(self) -> None:
        scheduler = MaintenanceScheduler()
        await scheduler.stop()
        assert scheduler.is_running is False

    @pytest.mark.asyncio
    async def test_loop_runs_due_tasks(self) -> None:
        calls: list[str] = []
        clock = FakeClock()
        scheduler = MaintenanceScheduler(
            [make_task("a", calls)], tick_seconds=0.01, clock=clock
        )
        clock.advance(hours=1)

        async with scheduler:
            await asyncio.sleep(0.1)

        await scheduler.wait_stopped()
        assert calls == ["a"]

    @pytest.mark.asyncio
    async def test_first_tick_waits_one_period(self) -> None:
        calls: list[str] = []
        clock = FakeClock()
        scheduler = MaintenanceScheduler(
            [make_task("a", calls)], tick_seconds=10, clock=clock
        )
        clock.advance(hours=1)

        await scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()
        await scheduler.wait_stopped()

        assert calls == []

    @pytest.mark.asyncio
    async def test_stop_lets_running_tick_finish(self) -> None:
        release = asyncio.Event()
        started = asyncio.Event()

        async def blocking_job() -> MaintenanceResult:
            started.set()
            await release.wait()
            return MaintenanceResult(success=True, message="finished")

        clock = FakeClock()
        scheduler = MaintenanceScheduler(
            [
                MaintenanceTaskDefinition(
                    id="blocking",
                    name="Blocking",
                    description="Waits for release",
                    frequency=Frequency.HOURLY,
                    priority=Priority.HIGH,
                    estimated_duration=1,
                    run=blocking_job,
                )
            ],
            tick_seconds=0.01,
            clock=clock,
        )
        clock.advance(hours=1)

        await scheduler.start()
        await asyncio.wait_for(started.wait(), timeout=1)
        await scheduler.stop()

        release.set()
        await asyncio.wait_for(scheduler.wait_stopped(), timeout=1)

        task = scheduler.get_task("blocking")
        assert task is not None
        assert task.last_run == clock.now

    @pytest.mark.asyncio
    async def test_restart(self) -> None:
        calls: list[str] = []
        clock = FakeClock()
        scheduler = MaintenanceScheduler(
            [make_task("a", calls)], tick_seconds=0.01, clock=clock
        )

        await scheduler.start()
        await scheduler.stop()
        await scheduler.wait_stopped()

        clock.advance(hours=1)
        await scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()
        await scheduler.wait_stopped()

        assert calls == ["a"]
