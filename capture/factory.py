"""
Capture Factory

Factory pattern for creating capture components.
Automatically selects real or mock devices based on availability.

Single place to decide which implementation a session runs on.
"""

import logging
from typing import Callable, Literal, Optional

from capture.constants import MAX_CLIP_DURATION, MIN_CLIP_DURATION, Facing
from capture.controllers.capture_session import VideoCaptureSession
from capture.implementations.ffmpeg_encoder import FFmpegEncoder
from capture.implementations.mock_encoder import MockEncoder
from capture.implementations.mock_media_device import MockMediaDevice
from capture.implementations.mock_scheduler import MockScheduler
from capture.implementations.opencv_media_device import OpenCVMediaDevice
from capture.implementations.thread_scheduler import ThreadScheduler
from capture.interfaces.encoder_interface import EncoderInterface
from capture.interfaces.media_device_interface import MediaDeviceInterface
from capture.interfaces.scheduler_interface import SchedulerInterface

# Type alias for better type hints
CaptureMode = Literal["auto", "real", "mock"]


class CaptureFactory:
    """
    Factory for creating capture components.

    Usage:
        # Auto-detect (uses camera/FFmpeg if available, mock otherwise)
        device = CaptureFactory.create_media_device()

        # Force mock mode (useful for testing)
        encoder = CaptureFactory.create_encoder(mode="mock")

        # Force real devices (raises error if not available)
        device = CaptureFactory.create_media_device(mode="real")
    """

    _logger = logging.getLogger(__name__)

    @classmethod
    def create_scheduler(cls, mode: CaptureMode = "auto") -> SchedulerInterface:
        """
        Create a scheduler.

        Only "mock" gives a manually advanced clock. Every other mode runs
        on real threads, mock devices included.
        """
        if mode == "mock":
            cls._logger.info("Creating Mock Scheduler")
            return MockScheduler()
        return ThreadScheduler()

    @classmethod
    def create_media_device(
        cls,
        mode: CaptureMode = "auto",
        scheduler: Optional[SchedulerInterface] = None,
    ) -> MediaDeviceInterface:
        """
        Create a media device.

        Args:
            mode: "auto" (detect), "real" (force OpenCV), "mock" (force mock)
            scheduler: Drives mock frame emission (ignored for real devices)

        Returns:
            MediaDeviceInterface implementation

        Raises:
            RuntimeError: If mode="real" but no camera is available

        Example:
            device = CaptureFactory.create_media_device(mode="mock")
        """
        if mode == "mock":
            cls._logger.info("Creating Mock Media Device")
            return MockMediaDevice(scheduler=scheduler)

        if mode == "real":
            try:
                device = OpenCVMediaDevice()
                if not device.is_available():
                    raise RuntimeError("Camera not available")
                cls._logger.info("Creating OpenCV Media Device (forced)")
                return device
            except Exception as e:
                raise RuntimeError(
                    f"Real media device requested but not available: {e}"
                ) from e

        # mode == "auto" - try real first, fall back to mock
        try:
            device = OpenCVMediaDevice()
            if device.is_available():
                cls._logger.info("Creating OpenCV Media Device (auto-detected)")
                return device
            cls._logger.warning("Camera not available, using Mock Media Device")
            return MockMediaDevice(scheduler=scheduler)
        except Exception as e:
            cls._logger.warning(
                f"Real media device not available ({e}), using Mock Media Device"
            )
            return MockMediaDevice(scheduler=scheduler)

    @classmethod
    def create_encoder(cls, mode: CaptureMode = "auto") -> EncoderInterface:
        """
        Create a clip encoder.

        Args:
            mode: "auto" (detect), "real" (force FFmpeg), "mock" (force mock)

        Raises:
            RuntimeError: If mode="real" but FFmpeg is not available
        """
        if mode == "mock":
            cls._logger.info("Creating Mock Encoder")
            return MockEncoder()

        encoder = FFmpegEncoder()
        if encoder.is_available():
            cls._logger.info(f"Creating FFmpeg Encoder ({mode})")
            return encoder

        if mode == "real":
            raise RuntimeError("Real encoder requested but FFmpeg not available")

        cls._logger.warning("FFmpeg not available, using Mock Encoder")
        return MockEncoder()

    @classmethod
    def is_real_capture_available(cls) -> dict[str, bool]:
        """
        Check if real capture is available.

        Useful for diagnostics and configuration display.

        Returns:
            Dictionary with availability status:
            {
                'camera': True/False,
                'ffmpeg': True/False
            }
        """
        status = {
            "camera": False,
            "ffmpeg": False,
        }

        try:
            status["camera"] = OpenCVMediaDevice().is_available()
        except Exception as e:
            cls._logger.debug(f"Camera check failed: {e}")

        try:
            status["ffmpeg"] = FFmpegEncoder().is_available()
        except Exception as e:
            cls._logger.debug(f"FFmpeg check failed: {e}")

        return status


# Convenience functions for quick creation

def create_capture_session(
    force_mock: bool = False,
    facing: Facing = Facing.FRONT,
    min_duration_seconds: int = MIN_CLIP_DURATION,
    max_duration_seconds: int = MAX_CLIP_DURATION,
    on_recorded: Optional[Callable[[bytes, int], None]] = None,
    on_cancelled: Optional[Callable[[], None]] = None,
) -> VideoCaptureSession:
    """
    Quick session creation with simple options.

    Mock devices still run on real threads here, so a mock session behaves
    like a live one (useful for demos without a camera).

    Args:
        force_mock: If True, always use mock camera and encoder

    Returns:
        Capture session, not yet started

    Example:
        session = create_capture_session(on_recorded=save_clip)
        session.start_camera()
    """
    mode: CaptureMode = "mock" if force_mock else "auto"
    scheduler = ThreadScheduler()
    return VideoCaptureSession(
        media_device=CaptureFactory.create_media_device(mode=mode, scheduler=scheduler),
        encoder=CaptureFactory.create_encoder(mode=mode),
        scheduler=scheduler,
        min_duration_seconds=min_duration_seconds,
        max_duration_seconds=max_duration_seconds,
        facing=facing,
        on_recorded=on_recorded,
        on_cancelled=on_cancelled,
    )
