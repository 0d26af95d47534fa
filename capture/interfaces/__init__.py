"""
Capture Interfaces Package

Exposes abstract interfaces for capture components.
"""

from capture.interfaces.encoder_interface import (
    EncoderHandle,
    EncoderInterface,
    EncodingError,
    RecorderUnavailableError,
)
from capture.interfaces.media_device_interface import (
    DeviceAcquisitionError,
    DeviceError,
    MediaDeviceInterface,
    NoDeviceFoundError,
    PermissionDeniedError,
)
from capture.interfaces.scheduler_interface import ScheduledTask, SchedulerInterface

# Public API
__all__ = [
    # Exceptions
    "DeviceAcquisitionError",
    "DeviceError",
    "EncodingError",
    "NoDeviceFoundError",
    "PermissionDeniedError",
    "RecorderUnavailableError",
    # Interfaces
    "EncoderHandle",
    "EncoderInterface",
    "MediaDeviceInterface",
    "ScheduledTask",
    "SchedulerInterface",
]
