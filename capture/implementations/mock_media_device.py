"""
Mock Media Device Implementation

Simulated camera + microphone for testing without hardware.
Produces synthetic, numbered frames so tests can check exactly which frame
went where (and whether it was mirrored).

This is a "Fake" (test double) - it has working logic but no real hardware.
"""

import logging
from typing import Dict, Optional, Type

import numpy as np

from capture.constants import COMPOSITING_FPS, Facing, StreamConstraints
from capture.interfaces.media_device_interface import (
    DeviceAcquisitionError,
    DeviceError,
    MediaDeviceInterface,
    NoDeviceFoundError,
    PermissionDeniedError,
)
from capture.interfaces.scheduler_interface import ScheduledTask, SchedulerInterface
from capture.models.media_stream import AudioTrack, MediaStream, VideoTrack

# Small portrait frames keep tests fast
MOCK_FRAME_WIDTH = 36
MOCK_FRAME_HEIGHT = 64
MOCK_SAMPLE_RATE = 48000


def make_synthetic_frame(index: int, width: int, height: int) -> np.ndarray:
    """
    Build a recognisable test frame.

    Blue channel is a left-to-right column ramp (so mirroring is visible),
    green channel carries the frame index.
    """
    frame = np.zeros((height, width, 3), dtype=np.uint8)
    frame[:, :, 0] = (np.arange(width, dtype=np.uint16) * 7 % 256).astype(np.uint8)
    frame[:, :, 1] = index % 256
    frame[: height // 2, : width // 4, 2] = 255  # top-left marker
    return frame


def frame_index(frame: np.ndarray) -> int:
    """Recover the (mod 256) frame index from a synthetic frame."""
    return int(frame[0, 0, 1])


class MockMediaDevice(MediaDeviceInterface):
    """
    Mock media device for testing.

    Usage:
        scheduler = MockScheduler()
        device = MockMediaDevice(scheduler=scheduler)
        stream = device.acquire(Facing.FRONT)  # first frame already delivered
        scheduler.advance(1.0)                  # 30 more frames
        device.release(stream)
    """

    def __init__(
        self,
        scheduler: Optional[SchedulerInterface] = None,
        width: int = MOCK_FRAME_WIDTH,
        height: int = MOCK_FRAME_HEIGHT,
        fps: int = COMPOSITING_FPS,
        with_audio: bool = True,
    ):
        """
        Initialize mock device.

        Args:
            scheduler: If given, frames are emitted automatically at fps.
                       If None, call emit_frame() by hand.
            width: Synthetic frame width
            height: Synthetic frame height
            fps: Emission rate when a scheduler is given
            with_audio: Attach an audio track to acquired streams
        """
        self.logger = logging.getLogger(__name__)
        self.scheduler = scheduler
        self.width = width
        self.height = height
        self.fps = fps
        self.with_audio = with_audio

        # State tracking
        self._active: Dict[str, MediaStream] = {}
        self._emit_tasks: Dict[str, ScheduledTask] = {}
        self._frame_counter = 0
        self._acquisition_count = 0
        self._release_count = 0
        self.last_constraints: Optional[StreamConstraints] = None
        self.acquired_facings = []

        # Configuration for test scenarios
        self._fail_with: Optional[Type[DeviceError]] = None
        self._deliver_frames = True
        self._available = True

        self.logger.info(
            f"Mock Media Device initialized ({width}x{height}, audio: {with_audio})"
        )

    def acquire(
        self,
        facing: Facing,
        constraints: Optional[StreamConstraints] = None,
    ) -> MediaStream:
        """Simulate opening camera and microphone."""
        self.last_constraints = constraints

        if self._fail_with is not None:
            self.logger.error(f"[MOCK] Simulated {self._fail_with.__name__}")
            raise self._fail_with(f"Simulated {self._fail_with.__name__}")

        # One physical camera cannot be held twice
        if self._active:
            raise DeviceAcquisitionError("Camera is already in use")

        audio = None
        if self.with_audio:
            audio = AudioTrack(sample_rate=MOCK_SAMPLE_RATE, channels=1, label="mock-mic")
        stream = MediaStream(
            video=VideoTrack(label=f"mock-{facing.value}"),
            audio=audio,
            facing=facing,
        )

        self._active[stream.stream_id] = stream
        self._acquisition_count += 1
        self.acquired_facings.append(facing)

        if self._deliver_frames:
            self._emit(stream)
            if self.scheduler is not None:
                self._emit_tasks[stream.stream_id] = self.scheduler.call_every(
                    1.0 / self.fps,
                    lambda: self._emit(stream),
                    name="MockCamera",
                )

        self.logger.info(f"[MOCK] Stream acquired: {stream}")
        return stream

    def release(self, stream: Optional[MediaStream]) -> None:
        """Stop the stream's tracks. Idempotent."""
        if stream is None:
            return

        task = self._emit_tasks.pop(stream.stream_id, None)
        if task is not None:
            task.cancel()

        stream.stop()

        if self._active.pop(stream.stream_id, None) is not None:
            self._release_count += 1
            self.logger.info(f"[MOCK] Stream released: {stream}")

    def _emit(self, stream: MediaStream) -> None:
        if not stream.is_live:
            return
        frame = make_synthetic_frame(self._frame_counter, self.width, self.height)
        self._frame_counter += 1
        stream.video.push(frame)
        if stream.audio is not None and stream.audio.is_live:
            samples = max(1, MOCK_SAMPLE_RATE // self.fps)
            stream.audio.push(np.zeros((samples, 1), dtype=np.float32))

    def is_available(self) -> bool:
        return self._available

    def cleanup(self) -> None:
        self.logger.debug("[MOCK] Cleanup")
        for stream in list(self._active.values()):
            self.release(stream)

    # =========================================================================
    # TESTING HELPER METHODS (not part of MediaDeviceInterface)
    # =========================================================================

    def emit_frame(self) -> None:
        """Push one synthetic frame to every active stream."""
        for stream in list(self._active.values()):
            self._emit(stream)

    def simulate_permission_denied(self) -> None:
        """Fail every acquire() with PermissionDeniedError until reset."""
        self._fail_with = PermissionDeniedError

    def simulate_no_device(self) -> None:
        """Fail every acquire() with NoDeviceFoundError until reset."""
        self._fail_with = NoDeviceFoundError
        self._available = False

    def simulate_acquisition_failure(self) -> None:
        """Fail every acquire() with DeviceAcquisitionError until reset."""
        self._fail_with = DeviceAcquisitionError

    def simulate_no_frames(self) -> None:
        """Acquire succeeds but the camera never delivers a frame."""
        self._deliver_frames = False

    def simulate_device_loss(self) -> None:
        """Unplug: every active stream's tracks end, hardware stays held."""
        self.logger.warning("[MOCK] Simulating device loss")
        for stream_id, stream in list(self._active.items()):
            task = self._emit_tasks.pop(stream_id, None)
            if task is not None:
                task.cancel()
            stream.stop()

    def reset_test_config(self) -> None:
        """Back to normal operation."""
        self._fail_with = None
        self._deliver_frames = True
        self._available = True
        self.logger.debug("[MOCK] Test configuration reset")

    def get_acquisition_count(self) -> int:
        return self._acquisition_count

    def get_release_count(self) -> int:
        return self._release_count

    def get_active_stream_count(self) -> int:
        return len(self._active)
