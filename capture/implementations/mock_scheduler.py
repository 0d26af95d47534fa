"""
Mock Scheduler Implementation

Virtual-clock scheduler for tests. Time only moves when advance() is called,
so a 60-second recording runs in a few milliseconds and every tick happens
at an exact, reproducible time.

This is a "Fake" (test double) - it has working logic but no real time.
"""

import heapq
import itertools
import logging
from typing import Callable, List, Tuple

from capture.interfaces.scheduler_interface import ScheduledTask, SchedulerInterface

# Due times are sums of float intervals (1/30 s), allow for rounding
_TIME_EPSILON = 1e-9


class MockTask(ScheduledTask):
    """Task living on the mock scheduler's queue."""

    def __init__(
        self,
        scheduler: "MockScheduler",
        interval: float,
        callback: Callable[[], None],
        repeat: bool,
        name: str,
    ):
        self.scheduler = scheduler
        self.interval = interval
        self.callback = callback
        self.repeat = repeat
        self.name = name or "MockTask"
        self.start_time = scheduler.now()
        self.calls = 0
        self._active = True

    def next_due(self) -> float:
        # Computed from the start, never accumulated
        return self.start_time + (self.calls + 1) * self.interval

    def cancel(self) -> None:
        self._active = False

    def is_active(self) -> bool:
        return self._active


class MockScheduler(SchedulerInterface):
    """
    Scheduler with a manually advanced clock.

    Callbacks due at the same time run in registration order.

    Usage:
        scheduler = MockScheduler()
        scheduler.call_every(1.0, tick)
        scheduler.advance(5.0)  # tick runs 5 times
    """

    def __init__(self, start_time: float = 0.0):
        self.logger = logging.getLogger(__name__)
        self._now = start_time
        self._queue: List[Tuple[float, int, MockTask]] = []
        self._sequence = itertools.count()
        self._tasks: List[MockTask] = []
        self._callbacks_run = 0

        self.logger.info(f"Mock Scheduler initialized (t={start_time})")

    def now(self) -> float:
        return self._now

    def call_every(
        self,
        interval: float,
        callback: Callable[[], None],
        name: str = "",
    ) -> ScheduledTask:
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        return self._schedule(interval, callback, repeat=True, name=name)

    def call_later(
        self,
        delay: float,
        callback: Callable[[], None],
        name: str = "",
    ) -> ScheduledTask:
        return self._schedule(max(0.0, delay), callback, repeat=False, name=name)

    def _schedule(
        self,
        interval: float,
        callback: Callable[[], None],
        repeat: bool,
        name: str,
    ) -> MockTask:
        task = MockTask(self, interval, callback, repeat, name)
        self._tasks.append(task)
        self._push(task)
        return task

    def _push(self, task: MockTask) -> None:
        heapq.heappush(self._queue, (task.next_due(), next(self._sequence), task))

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, running every callback that falls due.

        Callbacks may schedule or cancel tasks, including themselves.

        Args:
            seconds: How far to move the clock

        Returns:
            Number of callbacks run
        """
        if seconds < 0:
            raise ValueError("Cannot move the clock backwards")

        target = self._now + seconds
        run = 0

        while self._queue and self._queue[0][0] <= target + _TIME_EPSILON:
            due, _, task = heapq.heappop(self._queue)
            if not task.is_active():
                continue

            self._now = max(self._now, due)
            try:
                task.callback()
            except Exception as e:
                self.logger.error(f"[MOCK] Error in scheduled task {task.name}: {e}")
            run += 1
            task.calls += 1

            if task.repeat and task.is_active():
                self._push(task)
            elif not task.repeat:
                task.cancel()

        self._now = max(self._now, target)
        self._callbacks_run += run
        return run

    # =========================================================================
    # TESTING HELPER METHODS (not part of SchedulerInterface)
    # =========================================================================

    def active_tasks(self, name: str = "") -> List[MockTask]:
        """Active tasks, optionally filtered by name."""
        return [
            t for t in self._tasks
            if t.is_active() and (not name or t.name == name)
        ]

    def get_callbacks_run(self) -> int:
        return self._callbacks_run

    def cleanup(self) -> None:
        for task in self._tasks:
            task.cancel()
        self._tasks.clear()
        self._queue.clear()
        self.logger.debug("[MOCK] Scheduler cleanup")
