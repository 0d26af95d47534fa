"""
Capture Constants

Enums, encoding format preferences, user-facing messages and small helpers
for the clip capture system.

Configuration values (durations, bitrate, camera indices, etc.) live in
config/settings.py. This file re-exports the ones the capture package uses
so callers have a single import point.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from config.settings import (
    COMPOSITING_FPS,
    IDEAL_VIDEO_HEIGHT,
    IDEAL_VIDEO_WIDTH,
    MAX_CLIP_DURATION,
    MIN_CLIP_DURATION,
    SHORT_CLIP_WARNING_DURATION,
    STREAM_METADATA_TIMEOUT,
    TIMER_TICK_INTERVAL,
    VIDEO_BITRATE,
)

__all__ = [
    "COMPOSITING_FPS",
    "MAX_CLIP_DURATION",
    "MIN_CLIP_DURATION",
    "SHORT_CLIP_WARNING_DURATION",
    "STREAM_METADATA_TIMEOUT",
    "TIMER_TICK_INTERVAL",
    "VIDEO_BITRATE",
    "CaptureErrorKind",
    "CaptureState",
    "ENCODING_FORMAT_PREFERENCES",
    "EncodingFormat",
    "Facing",
    "FrameTransform",
    "StreamConstraints",
    "duration_hint",
    "format_clock",
    "format_duration",
    "short_clip_message",
]


# =============================================================================
# CAPTURE STATE TRACKING
# =============================================================================


class Facing(Enum):
    """Which physical camera supplies the video stream."""

    FRONT = "front"  # User-facing (selfie) camera
    BACK = "back"  # World-facing camera

    def toggled(self) -> "Facing":
        return Facing.BACK if self is Facing.FRONT else Facing.FRONT


class CaptureState(Enum):
    """
    States a capture session can be in.

    Lifecycle:
        IDLE -> ACQUIRING -> READY -> RECORDING -> FINALIZING -> COMPLETED
                    |          ^                       |
                    v          +------ (too short) ----+
                  ERROR -- retry --> ACQUIRING
    """

    IDLE = "idle"  # No camera held
    ACQUIRING = "acquiring"  # Waiting for camera/microphone
    READY = "ready"  # Live preview, can record
    RECORDING = "recording"  # Encoder running, timer ticking
    FINALIZING = "finalizing"  # Encoder assembling the clip
    ERROR = "error"  # Device or recorder failure, retry possible
    COMPLETED = "completed"  # Clip handed off, session finished


class CaptureErrorKind(Enum):
    """
    Error conditions surfaced by a capture session.

    A too-short clip is not listed here: it is an expected outcome and is
    reported as a transient warning instead.
    """

    PERMISSION_DENIED = "permission_denied"
    NO_DEVICE_FOUND = "no_device_found"
    ACQUISITION_FAILED = "acquisition_failed"
    RECORDER_UNAVAILABLE = "recorder_unavailable"
    RECORDING_FAILED = "recording_failed"


class FrameTransform(Enum):
    """Per-frame transform applied by the compositing loop."""

    IDENTITY = "identity"
    HORIZONTAL_MIRROR = "horizontal_mirror"


# =============================================================================
# USER-FACING MESSAGES
# =============================================================================

ERROR_MESSAGES = {
    CaptureErrorKind.PERMISSION_DENIED: (
        "Camera access denied. Please grant camera permissions."
    ),
    CaptureErrorKind.NO_DEVICE_FOUND: "No camera found on this device.",
    CaptureErrorKind.ACQUISITION_FAILED: (
        "Unable to access camera. Please check permissions."
    ),
    CaptureErrorKind.RECORDER_UNAVAILABLE: (
        "Video recording is not supported on this device."
    ),
    CaptureErrorKind.RECORDING_FAILED: (
        "Recording was interrupted. Please try again."
    ),
}


def short_clip_message(min_duration: int) -> str:
    return f"Video must be at least {min_duration} seconds"


def duration_hint(min_duration: int, max_duration: int) -> str:
    return f"Record {min_duration}-{max_duration} second video"


# =============================================================================
# STREAM CONSTRAINTS
# =============================================================================


@dataclass(frozen=True)
class StreamConstraints:
    """
    What a capture session asks the media device for.

    Resolution values are preferences, devices may deliver something else.
    The session sizes everything from the first delivered frame.
    """

    facing: Facing
    ideal_width: int = IDEAL_VIDEO_WIDTH
    ideal_height: int = IDEAL_VIDEO_HEIGHT
    audio: bool = True


# =============================================================================
# ENCODING FORMATS
# =============================================================================


@dataclass(frozen=True)
class EncodingFormat:
    """
    One candidate output format.

    mime_type mirrors what a browser recorder would report, the codec names
    are FFmpeg encoder names.
    """

    mime_type: str
    container: str
    extension: str
    video_codec: str
    audio_codec: str
    extra_video_args: Tuple[str, ...] = field(default_factory=tuple)


# Ordered best-first. The first format the encoder supports is used.
ENCODING_FORMAT_PREFERENCES: Tuple[EncodingFormat, ...] = (
    EncodingFormat(
        mime_type="video/webm;codecs=vp9",
        container="webm",
        extension="webm",
        video_codec="libvpx-vp9",
        audio_codec="libopus",
        extra_video_args=("-deadline", "realtime", "-cpu-used", "8"),
    ),
    EncodingFormat(
        mime_type="video/webm;codecs=vp8",
        container="webm",
        extension="webm",
        video_codec="libvpx",
        audio_codec="libvorbis",
        extra_video_args=("-deadline", "realtime", "-cpu-used", "8"),
    ),
    EncodingFormat(
        mime_type="video/webm",
        container="webm",
        extension="webm",
        video_codec="libvpx",
        audio_codec="libopus",
        extra_video_args=("-deadline", "realtime"),
    ),
    EncodingFormat(
        mime_type="video/mp4",
        container="mp4",
        extension="mp4",
        video_codec="libx264",
        audio_codec="aac",
        extra_video_args=("-preset", "ultrafast", "-movflags", "+faststart"),
    ),
)


def find_format(mime_type: str) -> Optional[EncodingFormat]:
    """Look up a preference entry by mime type."""
    for fmt in ENCODING_FORMAT_PREFERENCES:
        if fmt.mime_type == mime_type:
            return fmt
    return None


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def format_duration(seconds: float) -> str:
    """
    Format duration in seconds to human-readable string.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string (e.g., "1:00", "0:15")

    Example:
        format_duration(75) -> "1:15"
    """
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"


def format_clock(seconds: int) -> str:
    """
    Format elapsed seconds for the recording overlay.

    Example:
        format_clock(65) -> "01:05"
    """
    seconds = max(0, int(seconds))
    minutes = seconds // 60
    secs = seconds % 60
    return f"{minutes:02d}:{secs:02d}"
