"""
Scheduler Interface

Clock and callback scheduling used by the capture session.

Recording runs two cooperative background activities: the compositing
loop (~30 calls per second) and the 1-second elapsed timer. Both go
through this interface so tests can drive time by hand instead of sleeping.
"""

from abc import ABC, abstractmethod
from typing import Callable


class ScheduledTask(ABC):
    """Handle to a scheduled callback."""

    @abstractmethod
    def cancel(self) -> None:
        """
        Stop the task. Idempotent.

        After cancel() returns the callback is not started again. It is safe
        to call from inside the callback itself.
        """
        pass

    @abstractmethod
    def is_active(self) -> bool:
        """True until cancelled (or, for one-shot tasks, until fired)."""
        pass


class SchedulerInterface(ABC):
    """
    Abstract base class for schedulers.

    Usage:
        task = scheduler.call_every(1.0, on_tick, name="CaptureTimer")
        ...
        task.cancel()
    """

    @abstractmethod
    def now(self) -> float:
        """
        Current time in seconds.

        Monotonic, only differences between two values are meaningful.
        """
        pass

    @abstractmethod
    def call_every(
        self,
        interval: float,
        callback: Callable[[], None],
        name: str = "",
    ) -> ScheduledTask:
        """
        Run callback every interval seconds, first call one interval from now.

        Due times are computed from the start time, so a slow callback does
        not push later calls back.
        """
        pass

    @abstractmethod
    def call_later(
        self,
        delay: float,
        callback: Callable[[], None],
        name: str = "",
    ) -> ScheduledTask:
        """Run callback once, delay seconds from now."""
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Cancel every task created by this scheduler. Never raises."""
        pass
