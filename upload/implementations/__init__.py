"""
Implementations Package

Concrete clip sink implementations.
"""

from upload.implementations.local_clip_sink import LocalClipSink
from upload.implementations.mock_clip_sink import MockClipSink

__all__ = [
    "LocalClipSink",
    "MockClipSink",
]
