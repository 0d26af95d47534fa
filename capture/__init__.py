"""
Capture Module

Short profile-clip recording from a live camera.

Provides automatic detection and graceful fallback between real
OpenCV/FFmpeg capture and mock implementations for testing.

Public API:
    - VideoCaptureSession: One clip's capture lifecycle with callbacks
    - CaptureFactory: Factory for creating devices, encoders and schedulers
    - create_capture_session: Quick session creation with auto-detection
    - RecordingResult: Finished clip (bytes + duration)
    - CaptureState / CaptureErrorKind / Facing: Enumerations

Usage:
    from capture import create_capture_session

    session = create_capture_session()
    session.on_recorded = lambda blob, seconds: print(f"{seconds}s clip")
    session.start_camera()
    session.start_recording()
    # ...
    session.stop_recording()
    session.cleanup()
"""

from capture.constants import CaptureErrorKind, CaptureState, Facing
from capture.controllers.capture_session import VideoCaptureSession
from capture.factory import CaptureFactory, create_capture_session
from capture.interfaces.encoder_interface import EncodingError
from capture.interfaces.media_device_interface import DeviceError
from capture.models.recording_result import RecordingResult

__all__ = [
    "CaptureErrorKind",
    "CaptureFactory",
    "CaptureState",
    "DeviceError",
    "EncodingError",
    "Facing",
    "RecordingResult",
    "VideoCaptureSession",
    "create_capture_session",
]
