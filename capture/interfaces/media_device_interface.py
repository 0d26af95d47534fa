"""
Media Device Interface

Abstract interface for camera + microphone providers.
Defines the contract a capture session uses to get hold of a live stream.

Why an interface?
1. Testability: Can use MockMediaDevice (synthetic frames) instead of hardware
2. Flexibility: OpenCV today, GStreamer or a platform SDK tomorrow
3. Clear contract: Acquire/release ownership rules are documented in one place
"""

from abc import ABC, abstractmethod
from typing import Optional

from capture.constants import Facing, StreamConstraints
from capture.models.media_stream import MediaStream


class MediaDeviceInterface(ABC):
    """
    Abstract base class for media device providers.

    A provider hands out at most one live stream per physical camera.
    Whoever acquires a stream owns it and must give it back with release().
    """

    @abstractmethod
    def acquire(
        self,
        facing: Facing,
        constraints: Optional[StreamConstraints] = None,
    ) -> MediaStream:
        """
        Open camera (and microphone) for the requested facing direction.

        The returned stream's video track starts delivering frames as soon
        as the hardware produces them. Callers should wait for
        stream.video.wait_for_dimensions() before sizing anything.

        Args:
            facing: Which camera to open
            constraints: Resolution/audio preferences (None = defaults)

        Returns:
            Live MediaStream owned by the caller

        Raises:
            PermissionDeniedError: Access to camera/microphone was refused
            NoDeviceFoundError: No camera for this facing direction
            DeviceAcquisitionError: Any other failure (busy, driver error...)

        Example:
            stream = device.acquire(Facing.FRONT)
        """
        pass

    @abstractmethod
    def release(self, stream: Optional[MediaStream]) -> None:
        """
        Stop all tracks of a stream and free the hardware behind it.

        Must be idempotent: releasing None or an already released stream
        is a no-op. Never raises.

        Example:
            device.release(stream)
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if at least one camera can be opened.

        Returns:
            True if the provider can be used, False otherwise
        """
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """
        Release every stream still held by this provider.

        Called when shutting down. This should never raise exceptions.
        """
        pass


class DeviceError(Exception):
    """
    Exception raised when a camera/microphone stream cannot be acquired.

    Examples:
    - User refused camera access
    - No camera attached
    - Camera already in use
    """
    pass


class PermissionDeniedError(DeviceError):
    """Access to the camera or microphone was refused"""
    pass


class NoDeviceFoundError(DeviceError):
    """No camera exists for the requested facing direction"""
    pass


class DeviceAcquisitionError(DeviceError):
    """Camera exists but could not be opened (busy, driver error, ...)"""
    pass
