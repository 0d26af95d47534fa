"""
Thread Scheduler Implementation

Real scheduler backed by daemon threads and time.monotonic().
Each task gets its own worker thread waiting on a stop event, the same
pattern as a recording monitor loop.
"""

import logging
import threading
import time
from typing import Callable, List

from capture.interfaces.scheduler_interface import ScheduledTask, SchedulerInterface


class ThreadTask(ScheduledTask):
    """One scheduled callback running on its own daemon thread."""

    def __init__(
        self,
        interval: float,
        callback: Callable[[], None],
        repeat: bool,
        name: str,
    ):
        self.logger = logging.getLogger(__name__)
        self.interval = interval
        self.callback = callback
        self.repeat = repeat
        self.name = name or "ScheduledTask"

        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._worker,
            daemon=True,
            name=self.name,
        )

    def start(self) -> None:
        self._thread.start()

    def _worker(self) -> None:
        start = time.monotonic()
        calls = 0

        while True:
            next_due = start + (calls + 1) * self.interval
            timeout = max(0.0, next_due - time.monotonic())
            if self._stop_event.wait(timeout):
                break

            try:
                self.callback()
            except Exception as e:
                self.logger.error(f"Error in scheduled task {self.name}: {e}")

            if not self.repeat:
                self._stop_event.set()
                break

            calls += 1
            # Skip ticks missed while the callback was slow
            behind = int((time.monotonic() - start) / self.interval)
            if behind > calls:
                calls = behind

    def cancel(self) -> None:
        # No join: cancel() may be called from the callback's own thread,
        # or while the callback waits on a lock the caller holds.
        self._stop_event.set()

    def is_active(self) -> bool:
        return not self._stop_event.is_set()

    def join(self, timeout: float = 2.0) -> None:
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)


class ThreadScheduler(SchedulerInterface):
    """
    Scheduler for real use.

    Usage:
        scheduler = ThreadScheduler()
        task = scheduler.call_every(1.0, tick)
        ...
        task.cancel()
        scheduler.cleanup()
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._tasks: List[ThreadTask] = []
        self._lock = threading.Lock()

    def now(self) -> float:
        return time.monotonic()

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
    ) -> ThreadTask:
        task = ThreadTask(interval, callback, repeat, name)
        with self._lock:
            # Forget finished tasks so the list does not grow forever
            self._tasks = [t for t in self._tasks if t.is_active()]
            self._tasks.append(task)
        task.start()
        self.logger.debug(f"Scheduled {task.name} (every {interval}s: {repeat})")
        return task

    def active_task_count(self) -> int:
        with self._lock:
            return sum(1 for t in self._tasks if t.is_active())

    def cleanup(self) -> None:
        with self._lock:
            tasks = list(self._tasks)
            self._tasks.clear()

        for task in tasks:
            task.cancel()
        for task in tasks:
            task.join()
        self.logger.debug("Thread scheduler cleanup complete")
