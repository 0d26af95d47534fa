"""
Frame Compositor

Continuously redraws frames from a source video track onto a new output
track, applying a per-frame transform (horizontal mirror for front cameras).

The recorder consumes the output track instead of the raw camera track,
so what ends up in the clip matches the mirrored preview the user saw.

Lifecycle:
    compositor = FrameCompositor(camera_track, FrameTransform.HORIZONTAL_MIRROR, scheduler)
    output = compositor.start()   # first frame drawn immediately
    ...
    compositor.stop()             # no draws after this returns
"""

import logging
import threading
from typing import Optional

from capture.constants import COMPOSITING_FPS, FrameTransform
from capture.interfaces.scheduler_interface import ScheduledTask, SchedulerInterface
from capture.models.media_stream import VideoTrack
from capture.utils.frame_utils import apply_transform


class FrameCompositor:
    """
    Fixed-rate compositing loop.

    The output is a lazy, non-restartable frame sequence: once stopped, the
    output track has ended and a new compositor is needed.
    """

    def __init__(
        self,
        source: VideoTrack,
        transform: FrameTransform,
        scheduler: SchedulerInterface,
        fps: int = COMPOSITING_FPS,
    ):
        """
        Initialize compositor.

        Args:
            source: Track to read frames from (camera)
            transform: Transform applied to every frame
            scheduler: Drives the draw loop
            fps: Target draw rate
        """
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")

        self.logger = logging.getLogger(__name__)
        self.source = source
        self.transform = transform
        self.scheduler = scheduler
        self.fps = fps
        self.output = VideoTrack(label=f"composited-{transform.value}")

        self._lock = threading.Lock()
        self._active = False
        self._started = False
        self._task: Optional[ScheduledTask] = None
        self._frames_drawn = 0
        self.error: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def frames_drawn(self) -> int:
        return self._frames_drawn

    def start(self) -> VideoTrack:
        """
        Start the draw loop.

        Returns:
            Output track carrying transformed frames

        Raises:
            RuntimeError: If the compositor was already started once
        """
        with self._lock:
            if self._started:
                raise RuntimeError("Compositor cannot be restarted")
            self._started = True
            self._active = True

        self.draw_frame()
        self._task = self.scheduler.call_every(
            1.0 / self.fps,
            self.draw_frame,
            name="FrameCompositor",
        )
        if not self._active:
            # First draw already failed
            self._task.cancel()
            return self.output

        self.logger.info(
            f"Compositing started ({self.transform.value}, {self.fps} fps)"
        )
        return self.output

    def draw_frame(self) -> bool:
        """
        Draw one frame: read the source's latest frame, transform, push.

        Returns:
            True if a frame was pushed to the output
        """
        with self._lock:
            if not self._active:
                return False

            frame = self.source.latest_frame()
            if frame is None:
                return False

            try:
                composited = apply_transform(frame, self.transform)
            except Exception as e:
                # Session notices on its next tick and aborts the recording
                self.error = f"Compositing failed: {e}"
                self.logger.error(self.error)
                self._deactivate()
                return False

            self._frames_drawn += 1

        return self.output.push(composited)

    def stop(self) -> None:
        """Stop drawing and end the output track. Safe to call more than once."""
        with self._lock:
            was_active = self._active
            self._deactivate()

        self.output.stop()
        if was_active:
            self.logger.info(
                f"Compositing stopped ({self._frames_drawn} frames drawn)"
            )

    def _deactivate(self) -> None:
        """Called with the lock held."""
        self._active = False
        if self._task is not None:
            self._task.cancel()
