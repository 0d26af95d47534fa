"""
Capture Controllers Package

High-level controllers that orchestrate clip capture.
"""

from capture.controllers.capture_session import VideoCaptureSession
from capture.controllers.frame_compositor import FrameCompositor

# Public API
__all__ = [
    "FrameCompositor",
    "VideoCaptureSession",
]
