"""
Capture Implementations Package

Exposes concrete implementations of capture interfaces.
"""

from capture.implementations.ffmpeg_encoder import FFmpegEncoder
from capture.implementations.mock_encoder import MockEncoder
from capture.implementations.mock_media_device import MockMediaDevice
from capture.implementations.mock_scheduler import MockScheduler
from capture.implementations.opencv_media_device import OpenCVMediaDevice
from capture.implementations.thread_scheduler import ThreadScheduler

# Public API
__all__ = [
    "FFmpegEncoder",
    "MockEncoder",
    "MockMediaDevice",
    "MockScheduler",
    "OpenCVMediaDevice",
    "ThreadScheduler",
]
