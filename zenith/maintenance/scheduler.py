"""Periodic maintenance task scheduler.

A single polling loop checks every ``tick_seconds`` which registered tasks
are due, then runs them one after another in priority order. A task's
failure is turned into a failed ``MaintenanceResult`` and never stops the
loop or the rest of the batch.
"""

import asyncio
import time
from collections import deque
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Any

from zenith.constants import (
    DEFAULT_DURATION_HISTORY,
    DEFAULT_TICK_SECONDS,
    PRIORITY_RANK,
)
from zenith.log import format_context, get_logger
from zenith.models.domain.maintenance import (
    MaintenanceResult,
    MaintenanceSchedule,
    MaintenanceStats,
    MaintenanceTask,
    MaintenanceTaskDefinition,
    TaskScheduleState,
)
from zenith.types import Frequency, SchedulerState
from zenith.utils import add_months, start_of_day

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def calculate_next_run(
    frequency: Frequency | str, from_: datetime | None = None
) -> datetime:
    """Compute the next run time one frequency unit after ``from_``.

    Args:
        frequency: Task frequency
        from_: Base time, defaults to now

    Returns:
        Next scheduled run

    Raises:
        ValueError: If the frequency is unknown
    """
    base = from_ if from_ is not None else datetime.now()
    frequency = Frequency(frequency)

    if frequency == Frequency.HOURLY:
        return base + timedelta(hours=1)
    if frequency == Frequency.DAILY:
        return base + timedelta(days=1)
    if frequency == Frequency.WEEKLY:
        return base + timedelta(days=7)
    return add_months(base, 1)


class MaintenanceScheduler:
    """Runs a fixed registry of maintenance tasks on their schedules.

    Task definitions never change after construction. Scheduling state
    (enabled flag, last and next run) lives in a separate map whose entries
    are replaced, not mutated, so snapshots handed out by the introspection
    methods never change underneath the caller.

    The scheduler is meant for a single asyncio event loop; no locking is
    done around the registry.

    The registry holds only the definitions passed in; the built-in jobs
    are registered by ``MaintenanceApp`` from ``MaintenanceJobs.definitions()``.
    """

    def __init__(
        self,
        definitions: Iterable[MaintenanceTaskDefinition] = (),
        *,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        duration_history_size: int = DEFAULT_DURATION_HISTORY,
        clock: Clock = datetime.now,
    ) -> None:
        """Register the given tasks and compute their first run.

        Args:
            definitions: Tasks to register; ids must be unique
            tick_seconds: Interval between due-task checks
            duration_history_size: Recent durations kept per task
            clock: Source of the current time

        Raises:
            ValueError: If two definitions share an id
        """
        self.tick_seconds = tick_seconds
        self._clock = clock

        self._definitions: dict[str, MaintenanceTaskDefinition] = {}
        self._states: dict[str, TaskScheduleState] = {}
        self._durations: dict[str, deque[float]] = {}
        self._in_flight: set[str] = set()

        self.state = SchedulerState.STOPPED
        self._stop_event: asyncio.Event | None = None
        self._loop_tasks: set[asyncio.Task[None]] = set()
        self._current_loop: asyncio.Task[None] | None = None

        now = clock()
        for definition in definitions:
            if definition.id in self._definitions:
                raise ValueError(f"Duplicate maintenance task id: {definition.id}")

            self._definitions[definition.id] = definition
            self._states[definition.id] = TaskScheduleState(
                enabled=definition.enabled_by_default,
                next_run=calculate_next_run(definition.frequency, now),
            )
            self._durations[definition.id] = deque(maxlen=duration_history_size)

        logger.info(
            "Initialized maintenance tasks: "
            + format_context(
                task_count=len(self._definitions),
                enabled_tasks=sum(1 for s in self._states.values() if s.enabled),
            )
        )

    async def __aenter__(self) -> "MaintenanceScheduler":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.stop()

    @property
    def is_running(self) -> bool:
        return self.state == SchedulerState.RUNNING

    @property
    def task_ids(self) -> list[str]:
        return list(self._definitions)

    async def start(self) -> None:
        """Start the periodic due-task check; a no-op when already running."""
        if self.is_running:
            logger.warning("Maintenance scheduler already running")
            return

        self._stop_event = asyncio.Event()
        loop_task = asyncio.create_task(self._periodic_loop(self._stop_event))
        self._loop_tasks.add(loop_task)
        loop_task.add_done_callback(self._loop_tasks.discard)
        self._current_loop = loop_task

        self.state = SchedulerState.RUNNING
        logger.info(
            "Maintenance scheduler started: "
            + format_context(tick_seconds=float(self.tick_seconds))
        )

    async def stop(self) -> None:
        """Stop scheduling future ticks.

        A tick that is already executing is allowed to finish; nothing is
        cancelled.
        """
        if not self.is_running:
            logger.warning("Maintenance scheduler not running")
            return

        self.state = SchedulerState.STOPPED
        if self._stop_event is not None:
            self._stop_event.set()
            self._stop_event = None
        self._current_loop = None

        logger.info("Maintenance scheduler stopped")

    async def wait_stopped(self) -> None:
        """Wait until loops of previous runs have finished their last tick.

        The loop of the current run is not awaited, so this returns even
        while the scheduler is running.
        """
        stopped = [t for t in self._loop_tasks if t is not self._current_loop]
        if stopped:
            await asyncio.gather(*stopped, return_exceptions=True)

    async def _periodic_loop(self, stop_event: asyncio.Event) -> None:
        """Tick on a fixed period until ``stop_event`` is set.

        Deadlines advance by exactly one period, so a tick that overruns is
        followed immediately by the next one; ticks never overlap.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.tick_seconds

        while not stop_event.is_set():
            try:
                await asyncio.wait_for(
                    stop_event.wait(), timeout=max(0.0, deadline - loop.time())
                )
                break
            except asyncio.TimeoutError:
                pass

            deadline += self.tick_seconds
            try:
                await self.check_and_run_tasks()
            except Exception as e:
                logger.error(f"Error in maintenance tick: {e}")

            deadline = max(deadline, loop.time())

        logger.debug("Maintenance loop exited")

    def due_tasks(self, now: datetime | None = None) -> list[MaintenanceTask]:
        """Return the tasks due at ``now`` in execution order.

        A task is due when it is enabled, not currently executing and its
        next run is at or before ``now``. Order: priority rank, then
        earliest next run.
        """
        if now is None:
            now = self._clock()

        due = [
            self._snapshot(task_id)
            for task_id, state in self._states.items()
            if state.enabled
            and state.next_run is not None
            and state.next_run <= now
            and task_id not in self._in_flight
        ]
        return sorted(
            due,
            key=lambda task: (PRIORITY_RANK[task.priority], task.next_run),
        )

    async def check_and_run_tasks(self) -> list[MaintenanceResult]:
        """Run every due task sequentially; one tick of the scheduler."""
        due = self.due_tasks(self._clock())
        if not due:
            return []

        logger.info(
            "Running due tasks: "
            + format_context(task_count=len(due), tasks=[t.name for t in due])
        )

        results = []
        for task in due:
            results.append(await self._run_task(task.id))
        return results

    async def run_task_manually(self, task_id: str) -> MaintenanceResult:
        """Run a task now, ignoring its enabled flag and next run."""
        if task_id not in self._definitions:
            logger.warning(f"Unknown maintenance task: {task_id}")
            return MaintenanceResult(
                success=False, message=f"Task {task_id} not found", duration=0
            )

        return await self._run_task(task_id)

    async def _run_task(self, task_id: str) -> MaintenanceResult:
        definition = self._definitions[task_id]
        context = {"task_id": definition.id, "task_name": definition.name}

        logger.info("Starting task: " + format_context(**context))
        self._in_flight.add(task_id)
        started = time.perf_counter()

        try:
            result = await definition.run()
        except Exception as e:
            duration = (time.perf_counter() - started) * 1000
            self._record_run(definition, duration)
            logger.error(
                f"Task failed: {e} " + format_context(**context, duration=duration)
            )
            return MaintenanceResult(
                success=False,
                message=f"Task failed: {e}",
                duration=duration,
                errors=[str(e)],
            )
        finally:
            self._in_flight.discard(task_id)

        duration = (time.perf_counter() - started) * 1000
        self._record_run(definition, duration)
        logger.info(
            "Task completed: "
            + format_context(
                **context,
                success=result.success,
                duration=duration,
                message=result.message,
            )
        )
        return result.model_copy(update={"duration": duration})

    def _record_run(self, definition: MaintenanceTaskDefinition, duration: float) -> None:
        last_run = self._clock()
        self._states[definition.id] = self._states[definition.id].model_copy(
            update={
                "last_run": last_run,
                "next_run": calculate_next_run(definition.frequency, last_run),
            }
        )
        self._durations[definition.id].append(duration)

    def set_task_enabled(self, task_id: str, enabled: bool) -> bool:
        """Enable or disable a task; False when the id is unknown."""
        state = self._states.get(task_id)
        if state is None:
            return False

        self._states[task_id] = state.model_copy(update={"enabled": enabled})
        logger.info(
            "Task enabled status changed: "
            + format_context(task_id=task_id, enabled=enabled)
        )
        return True

    def _snapshot(self, task_id: str) -> MaintenanceTask:
        definition = self._definitions[task_id]
        state = self._states[task_id]
        return MaintenanceTask(
            id=definition.id,
            name=definition.name,
            description=definition.description,
            frequency=definition.frequency,
            priority=definition.priority,
            estimated_duration=definition.estimated_duration,
            enabled=state.enabled,
            last_run=state.last_run,
            next_run=state.next_run,
            in_progress=task_id in self._in_flight,
        )

    def get_task(self, task_id: str) -> MaintenanceTask | None:
        if task_id not in self._definitions:
            return None
        return self._snapshot(task_id)

    def get_tasks(self) -> list[MaintenanceTask]:
        return [self._snapshot(task_id) for task_id in self._definitions]

    def get_schedule(self) -> MaintenanceSchedule:
        return MaintenanceSchedule(
            tasks=self.get_tasks(),
            is_running=self.is_running,
            last_maintenance_window=self.get_last_maintenance_window(),
            next_maintenance_window=self.get_next_maintenance_window(),
        )

    def get_last_maintenance_window(self) -> datetime | None:
        last_runs = [s.last_run for s in self._states.values() if s.last_run]
        return max(last_runs, default=None)

    def get_next_maintenance_window(self) -> datetime | None:
        next_runs = [s.next_run for s in self._states.values() if s.next_run]
        return min(next_runs, default=None)

    def get_task_durations(self, task_id: str) -> list[float]:
        """Recent run durations in milliseconds, oldest first."""
        return list(self._durations.get(task_id, ()))

    def get_maintenance_stats(self) -> MaintenanceStats:
        today = start_of_day(self._clock())
        states = list(self._states.values())
        durations = [d for history in self._durations.values() for d in history]

        return MaintenanceStats(
            total_tasks=len(states),
            enabled_tasks=sum(1 for s in states if s.enabled),
            tasks_run_today=sum(
                1 for s in states if s.last_run is not None and s.last_run >= today
            ),
            average_task_duration=(
                sum(durations) / len(durations) if durations else 0.0
            ),
            last_maintenance_run=self.get_last_maintenance_window(),
        )
