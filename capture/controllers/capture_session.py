"""
Capture Session

Manages the lifecycle of recording one short video clip from a live camera:
camera acquisition and switching, mirrored compositing for the front
camera, time-boxed recording, and minimum-duration enforcement.

This is the high-level controller a recorder UI talks to.

SOLID Principles:
- Single Responsibility: Only manages one clip's capture lifecycle
- Open/Closed: Callbacks for every observable event
- Dependency Inversion: Depends on device/encoder/scheduler interfaces
"""

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np

from capture.constants import (
    COMPOSITING_FPS,
    ENCODING_FORMAT_PREFERENCES,
    ERROR_MESSAGES,
    MAX_CLIP_DURATION,
    MIN_CLIP_DURATION,
    SHORT_CLIP_WARNING_DURATION,
    STREAM_METADATA_TIMEOUT,
    TIMER_TICK_INTERVAL,
    VIDEO_BITRATE,
    CaptureErrorKind,
    CaptureState,
    EncodingFormat,
    Facing,
    FrameTransform,
    StreamConstraints,
    duration_hint,
    format_duration,
    short_clip_message,
)
from capture.controllers.frame_compositor import FrameCompositor
from capture.interfaces.encoder_interface import (
    EncoderHandle,
    EncoderInterface,
    RecorderUnavailableError,
)
from capture.interfaces.media_device_interface import (
    MediaDeviceInterface,
    NoDeviceFoundError,
    PermissionDeniedError,
)
from capture.interfaces.scheduler_interface import ScheduledTask, SchedulerInterface
from capture.models.media_stream import MediaStream
from capture.models.recording_result import RecordingResult
from capture.utils.frame_utils import (
    elapsed_whole_seconds,
    mirror_frame,
    select_encoding_format,
)

# States in which the camera must not change and the session must not end
_BUSY_STATES = (CaptureState.RECORDING, CaptureState.FINALIZING)


class VideoCaptureSession:
    """
    Manages a single clip capture.

    Features:
    - Camera acquisition with error classification and retry
    - Front/back camera switching (not while recording)
    - Mirrored recording for the front camera
    - 1-second elapsed timer with auto-stop at the maximum duration
    - Too-short clips discarded with a transient warning
    - Callbacks for every outcome

    Usage:
        session = VideoCaptureSession(device, encoder, scheduler)

        # Register callbacks
        session.on_recorded = lambda blob, seconds: sink.on_recorded(blob, seconds)
        session.on_cancelled = sink.on_cancelled

        session.start_camera(Facing.FRONT)
        session.start_recording()
        # ... user records ...
        session.stop_recording()
    """

    def __init__(
        self,
        media_device: MediaDeviceInterface,
        encoder: EncoderInterface,
        scheduler: SchedulerInterface,
        min_duration_seconds: int = MIN_CLIP_DURATION,
        max_duration_seconds: int = MAX_CLIP_DURATION,
        facing: Facing = Facing.FRONT,
        on_recorded: Optional[Callable[[bytes, int], None]] = None,
        on_cancelled: Optional[Callable[[], None]] = None,
        compositing_fps: int = COMPOSITING_FPS,
        video_bitrate: int = VIDEO_BITRATE,
        format_preferences: Iterable[EncodingFormat] = ENCODING_FORMAT_PREFERENCES,
        metadata_timeout: float = STREAM_METADATA_TIMEOUT,
        warning_duration: float = SHORT_CLIP_WARNING_DURATION,
        tick_interval: float = TIMER_TICK_INTERVAL,
    ):
        """
        Initialize capture session.

        Args:
            media_device: Camera/microphone provider
            encoder: Two-phase clip encoder
            scheduler: Clock and timers
            min_duration_seconds: Shorter clips are discarded
            max_duration_seconds: Recording auto-stops here
            facing: Initial camera
            on_recorded: Called with (blob, duration_seconds) on success.
                If it raises, the error is logged and the session still
                completes. The clip stays in last_result for another try.
            on_cancelled: Called when the user cancels

        Raises:
            ValueError: If the duration limits are inconsistent
        """
        if max_duration_seconds <= 0:
            raise ValueError(f"Invalid max duration: {max_duration_seconds}s")
        if min_duration_seconds < 0 or min_duration_seconds > max_duration_seconds:
            raise ValueError(
                f"Invalid min duration: {min_duration_seconds}s "
                f"(must be 0-{max_duration_seconds})"
            )

        self.logger = logging.getLogger(__name__)
        self.media_device = media_device
        self.encoder = encoder
        self.scheduler = scheduler

        # Fixed per session
        self.min_duration_seconds = min_duration_seconds
        self.max_duration_seconds = max_duration_seconds
        self.compositing_fps = compositing_fps
        self.video_bitrate = video_bitrate
        self.format_preferences = tuple(format_preferences)
        self.metadata_timeout = metadata_timeout
        self.warning_duration = warning_duration
        self.tick_interval = tick_interval

        # Session state
        self.state = CaptureState.IDLE
        self.facing = facing
        self.elapsed_seconds = 0
        self.frame_size: Optional[Tuple[int, int]] = None
        self.error_kind: Optional[CaptureErrorKind] = None
        self.error_message: Optional[str] = None
        self.short_clip_warning = False
        self.last_result: Optional[RecordingResult] = None

        # Owned resources
        self._stream: Optional[MediaStream] = None
        self._compositor: Optional[FrameCompositor] = None
        self._encoder_handle: Optional[EncoderHandle] = None
        self._format: Optional[EncodingFormat] = None
        self._timer_task: Optional[ScheduledTask] = None
        self._warning_task: Optional[ScheduledTask] = None
        self._start_time: Optional[float] = None

        # Timer and compositing callbacks arrive on other threads
        self._lock = threading.RLock()
        self._pending_callbacks: List[Tuple[str, tuple]] = []

        # Callbacks for events
        self.on_recorded = on_recorded
        self.on_cancelled = on_cancelled
        self.on_state_change: Optional[Callable[[CaptureState, CaptureState], None]] = None
        self.on_warning: Optional[Callable[[str], None]] = None
        self.on_error: Optional[Callable[[CaptureErrorKind, str], None]] = None
        self.on_tick: Optional[Callable[[int, int], None]] = None

        self.logger.info(
            f"Capture Session initialized "
            f"({duration_hint(min_duration_seconds, max_duration_seconds)}, "
            f"facing: {facing.value})"
        )

    # =========================================================================
    # CAMERA
    # =========================================================================

    @property
    def stream(self) -> Optional[MediaStream]:
        return self._stream

    def start_camera(self, facing: Optional[Facing] = None) -> bool:
        """
        Acquire a camera stream and wait for its first frame.

        Releases any stream already held first. Never raises: failures end
        in the ERROR state with a user-facing message.

        Args:
            facing: Camera to open (None = keep current facing)

        Returns:
            True if the session is READY, False otherwise
        """
        with self._lock:
            success = self._start_camera_locked(facing)
        self._flush_callbacks()
        return success

    def retry(self) -> bool:
        """Re-acquire the current camera, typically after an error."""
        self.logger.info("Retrying camera acquisition")
        return self.start_camera(self.facing)

    def switch_camera(self) -> bool:
        """
        Toggle between front and back camera.

        No-op while recording: the camera cannot change mid-clip.

        Returns:
            True if the other camera is now READY
        """
        with self._lock:
            if self.state in _BUSY_STATES:
                self.logger.warning("Cannot switch camera while recording")
                return False
            if self.state == CaptureState.COMPLETED:
                self.logger.warning("Cannot switch camera - session completed")
                return False

            new_facing = self.facing.toggled()
            self.logger.info(
                f"Switching camera: {self.facing.value} -> {new_facing.value}"
            )
            success = self._start_camera_locked(new_facing)
        self._flush_callbacks()
        return success

    def _start_camera_locked(self, facing: Optional[Facing]) -> bool:
        if self.state in _BUSY_STATES:
            self.logger.warning(
                f"Cannot start camera - session in state: {self.state.value}"
            )
            return False
        if self.state == CaptureState.COMPLETED:
            self.logger.warning("Cannot start camera - session completed")
            return False

        # Exactly one stream per session
        self._release_stream()

        if facing is not None:
            self.facing = facing
        self.error_kind = None
        self.error_message = None
        self.frame_size = None
        self._transition(CaptureState.ACQUIRING, f"{self.facing.value} camera")

        try:
            stream = self.media_device.acquire(
                self.facing,
                StreamConstraints(facing=self.facing),
            )
        except PermissionDeniedError as e:
            return self._fail(CaptureErrorKind.PERMISSION_DENIED, str(e))
        except NoDeviceFoundError as e:
            return self._fail(CaptureErrorKind.NO_DEVICE_FOUND, str(e))
        except Exception as e:
            return self._fail(CaptureErrorKind.ACQUISITION_FAILED, str(e))

        self._stream = stream

        # Compositing surface is sized from the first frame
        dimensions = stream.video.wait_for_dimensions(self.metadata_timeout)
        if dimensions is None:
            return self._fail(
                CaptureErrorKind.ACQUISITION_FAILED,
                f"No frames from camera within {self.metadata_timeout}s",
            )

        self.frame_size = dimensions
        self._transition(
            CaptureState.READY,
            f"{dimensions[0]}x{dimensions[1]} preview",
        )
        return True

    def get_preview_frame(self) -> Optional[np.ndarray]:
        """
        Latest live frame for display.

        Front camera previews are mirrored, like looking into a mirror.

        Returns:
            BGR frame, or None if no stream is live
        """
        stream = self._stream
        if stream is None or not stream.is_live:
            return None

        frame = stream.video.latest_frame()
        if frame is None:
            return None
        if self.facing is Facing.FRONT:
            return mirror_frame(frame)
        return frame

    # =========================================================================
    # RECORDING
    # =========================================================================

    def start_recording(self) -> bool:
        """
        Start recording a clip.

        Requires READY. For the front camera the recorded video comes from
        a mirroring compositor, for the back camera straight from the stream.

        Returns:
            True if recording started, False otherwise
        """
        with self._lock:
            success = self._start_recording_locked()
        self._flush_callbacks()
        return success

    def _start_recording_locked(self) -> bool:
        if self.state != CaptureState.READY or self._stream is None:
            self.logger.error(
                f"Cannot start recording - session in state: {self.state.value}"
            )
            return False

        fmt = select_encoding_format(self.encoder, self.format_preferences)
        if fmt is None:
            return self._fail(
                CaptureErrorKind.RECORDER_UNAVAILABLE,
                "No supported encoding format",
            )

        recording_stream = self._stream
        if self.facing is Facing.FRONT:
            self._compositor = FrameCompositor(
                self._stream.video,
                FrameTransform.HORIZONTAL_MIRROR,
                self.scheduler,
                fps=self.compositing_fps,
            )
            # Composited video, unmodified microphone audio
            recording_stream = self._stream.with_video(self._compositor.output)

        try:
            self._encoder_handle = self.encoder.begin_encoding(
                recording_stream,
                fmt,
                self.video_bitrate,
            )
        except RecorderUnavailableError as e:
            return self._fail(CaptureErrorKind.RECORDER_UNAVAILABLE, str(e))
        except Exception as e:
            self.logger.error(f"Error starting encoder: {e}", exc_info=True)
            return self._fail(CaptureErrorKind.RECORDING_FAILED, str(e))

        self._format = fmt
        self._start_time = self.scheduler.now()
        self.elapsed_seconds = 0
        self._hide_short_clip_warning()
        self._transition(CaptureState.RECORDING, fmt.mime_type)

        if self._compositor is not None:
            self._compositor.start()

        self._timer_task = self.scheduler.call_every(
            self.tick_interval,
            self._on_timer_tick,
            name="CaptureTimer",
        )

        self.logger.info(
            f"Recording started ({self.facing.value} camera, "
            f"max {format_duration(self.max_duration_seconds)})"
        )
        return True

    def stop_recording(self) -> Optional[RecordingResult]:
        """
        Stop recording and finalize the clip.

        The outcome is settled before this returns: a result, a discarded
        too-short clip (session back to READY), or an error.

        Returns:
            RecordingResult if a clip was produced, None otherwise
        """
        with self._lock:
            result = self._stop_recording_locked()
        self._flush_callbacks()
        return result

    def _stop_recording_locked(self) -> Optional[RecordingResult]:
        if self.state != CaptureState.RECORDING:
            self.logger.warning(
                f"Cannot stop - not recording (state: {self.state.value})"
            )
            return None

        stop_time = self.scheduler.now()
        self._transition(CaptureState.FINALIZING, "stop requested")
        self._stop_background_activities()

        duration = min(
            elapsed_whole_seconds(self._start_time, stop_time),
            self.max_duration_seconds,
        )
        self.elapsed_seconds = duration

        handle = self._encoder_handle
        self._encoder_handle = None
        try:
            blob = self.encoder.finish_encoding(handle)
        except Exception as e:
            self.logger.error(f"Error finalizing clip: {e}", exc_info=True)
            self._fail(CaptureErrorKind.RECORDING_FAILED, str(e))
            return None

        if not blob:
            self._fail(CaptureErrorKind.RECORDING_FAILED, "Encoder produced an empty clip")
            return None

        if duration < self.min_duration_seconds:
            self.logger.info(
                f"Clip too short ({duration}s < {self.min_duration_seconds}s), "
                f"discarding {len(blob)} bytes"
            )
            if self._stream is None or not self._stream.is_live:
                self._fail(CaptureErrorKind.RECORDING_FAILED, "Camera stream ended")
                return None
            self._show_short_clip_warning()
            self._transition(CaptureState.READY, "clip too short")
            return None

        result = RecordingResult(
            blob=blob,
            duration_seconds=duration,
            mime_type=self._format.mime_type,
            facing=self.facing,
            frame_count=handle.frames_encoded,
        )
        self.last_result = result

        self._release_stream()
        self._transition(CaptureState.COMPLETED, f"{duration}s clip")
        self.logger.info(
            f"Clip recorded: {duration}s, {result.size_mb:.2f} MB "
            f"({result.mime_type})"
        )
        self._queue_callback("on_recorded", result.blob, result.duration_seconds)
        return result

    def _on_timer_tick(self) -> None:
        """
        Recompute elapsed time from the start time and check limits.

        Runs every tick_interval while RECORDING.
        """
        with self._lock:
            if self.state != CaptureState.RECORDING:
                return

            problem = self._detect_recording_failure()
            if problem:
                self._abort_recording(problem)
            else:
                elapsed = elapsed_whole_seconds(self._start_time, self.scheduler.now())
                self.elapsed_seconds = min(elapsed, self.max_duration_seconds)
                self._queue_callback(
                    "on_tick",
                    self.elapsed_seconds,
                    self.remaining_seconds,
                )

                if elapsed >= self.max_duration_seconds:
                    self.logger.info("Maximum duration reached, auto-stopping")
                    self._stop_recording_locked()

        self._flush_callbacks()

    def _detect_recording_failure(self) -> Optional[str]:
        if self._stream is None or not self._stream.is_live:
            return "Camera stream ended during recording"
        if self._compositor is not None and self._compositor.error:
            return self._compositor.error
        if self._encoder_handle is not None and self._encoder_handle.error:
            return f"Encoder failed: {self._encoder_handle.error}"
        return None

    def _abort_recording(self, reason: str) -> None:
        self.logger.error(f"Recording aborted: {reason}")
        self._fail(CaptureErrorKind.RECORDING_FAILED, reason)

    @property
    def remaining_seconds(self) -> int:
        return max(0, self.max_duration_seconds - self.elapsed_seconds)

    @property
    def is_recording(self) -> bool:
        return self.state == CaptureState.RECORDING

    # =========================================================================
    # CANCEL / CLEANUP
    # =========================================================================

    def cancel(self) -> bool:
        """
        Close the recorder without producing a clip.

        Refused while recording: stop (or let it auto-stop) first, so an
        in-progress capture is never lost silently.

        Returns:
            True if cancelled, False if refused
        """
        with self._lock:
            if self.state in _BUSY_STATES:
                self.logger.warning("Cannot cancel while recording")
                return False
            if self.state == CaptureState.COMPLETED:
                self.logger.warning("Cannot cancel - session completed")
                return False

            self._teardown()
            self.error_kind = None
            self.error_message = None
            self._transition(CaptureState.IDLE, "cancelled")
            self._queue_callback("on_cancelled")
        self._flush_callbacks()
        return True

    def cleanup(self) -> None:
        """
        Release everything. Safe in any state, emits no outcome callbacks.

        Always call this when done with the session!
        """
        self.logger.info("Cleaning up Capture Session")
        with self._lock:
            self._teardown()
            if self.state != CaptureState.COMPLETED:
                self.state = CaptureState.IDLE
        self.logger.info("Capture Session cleanup complete")

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _fail(self, kind: CaptureErrorKind, detail: str) -> bool:
        """Tear down, enter ERROR with a user-facing message. Returns False."""
        self._teardown()
        self.error_kind = kind
        self.error_message = ERROR_MESSAGES[kind]
        self.logger.error(f"Capture error ({kind.value}): {detail}")
        self._transition(CaptureState.ERROR, kind.value)
        self._queue_callback("on_error", kind, self.error_message)
        return False

    def _teardown(self) -> None:
        """Stop loops and timers, discard any encoding, release the stream."""
        self._stop_background_activities()
        if self._encoder_handle is not None:
            try:
                self.encoder.abort_encoding(self._encoder_handle)
            except Exception as e:
                self.logger.error(f"Error aborting encoder: {e}")
            self._encoder_handle = None
        self._hide_short_clip_warning()
        self._release_stream()

    def _stop_background_activities(self) -> None:
        """Cancel the timer and the compositing loop."""
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None
        if self._compositor is not None:
            self._compositor.stop()
            self._compositor = None

    def _release_stream(self) -> None:
        if self._stream is None:
            return
        stream = self._stream
        self._stream = None
        try:
            self.media_device.release(stream)
        except Exception as e:
            self.logger.error(f"Error releasing stream: {e}")

    def _show_short_clip_warning(self) -> None:
        self._hide_short_clip_warning()
        self.short_clip_warning = True
        self._queue_callback("on_warning", short_clip_message(self.min_duration_seconds))
        self._warning_task = self.scheduler.call_later(
            self.warning_duration,
            self._on_warning_expired,
            name="ShortClipWarning",
        )

    def _hide_short_clip_warning(self) -> None:
        if self._warning_task is not None:
            self._warning_task.cancel()
            self._warning_task = None
        self.short_clip_warning = False

    def _on_warning_expired(self) -> None:
        with self._lock:
            self._warning_task = None
            self.short_clip_warning = False

    @property
    def warning_message(self) -> Optional[str]:
        if not self.short_clip_warning:
            return None
        return short_clip_message(self.min_duration_seconds)

    def _transition(self, new_state: CaptureState, reason: str = "") -> None:
        if new_state == self.state:
            return

        old_state = self.state
        self.state = new_state

        log_msg = f"State transition: {old_state.value} -> {new_state.value}"
        if reason:
            log_msg += f" ({reason})"
        self.logger.info(log_msg)

        self._queue_callback("on_state_change", old_state, new_state)

    # =========================================================================
    # CALLBACK TRIGGERS
    # =========================================================================

    def _queue_callback(self, name: str, *args: Any) -> None:
        """Defer a callback until the session lock is released."""
        self._pending_callbacks.append((name, args))

    def _flush_callbacks(self) -> None:
        with self._lock:
            pending = self._pending_callbacks
            self._pending_callbacks = []

        for name, args in pending:
            callback = getattr(self, name, None)
            if callback is None:
                continue
            try:
                callback(*args)
            except Exception as e:
                self.logger.error(f"Error in {name} callback: {e}", exc_info=True)

    # =========================================================================
    # STATUS AND INFO
    # =========================================================================

    def get_status(self) -> Dict[str, Any]:
        """
        Get complete session status.

        Returns:
            Dictionary with status information
        """
        return {
            "state": self.state.value,
            "facing": self.facing.value,
            "elapsed_seconds": self.elapsed_seconds,
            "remaining_seconds": self.remaining_seconds,
            "min_duration": self.min_duration_seconds,
            "max_duration": self.max_duration_seconds,
            "frame_size": self.frame_size,
            "stream_live": self._stream is not None and self._stream.is_live,
            "compositing": self._compositor is not None and self._compositor.is_active,
            "format": self._format.mime_type if self._format else None,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error_message": self.error_message,
            "short_clip_warning": self.short_clip_warning,
        }

    def get_session_info(self) -> str:
        """
        Get human-readable session information.

        Returns:
            Formatted string with session details
        """
        status = self.get_status()

        info = [
            f"State: {status['state']}",
            f"Camera: {status['facing']}",
        ]
        if self.state == CaptureState.RECORDING:
            info.append(f"Elapsed: {format_duration(status['elapsed_seconds'])}")
            info.append(f"Remaining: {status['remaining_seconds']}s")
        if status["error_message"]:
            info.append(f"Error: {status['error_message']}")
        if status["short_clip_warning"]:
            info.append(f"Warning: {self.warning_message}")

        return "\n".join(info)
