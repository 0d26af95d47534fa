"""
Upload Module

Where finished profile clips go once a capture session hands them off.

Public API:
    - LocalClipSink: Per-user clip files plus JSON metadata
    - ClipRecord: Metadata of one stored clip
    - ClipSinkError / ClipLimitReachedError: Storage errors
    - create_clip_sink: Factory function

Usage:
    from upload import create_clip_sink

    sink = create_clip_sink(user_id="alice")
    session.on_recorded = sink.on_recorded
    session.on_cancelled = sink.on_cancelled
"""

from upload.factory import ClipSinkFactory, create_clip_sink
from upload.implementations.local_clip_sink import LocalClipSink
from upload.interfaces.clip_sink_interface import (
    ClipLimitReachedError,
    ClipRecord,
    ClipSinkError,
    ClipSinkInterface,
)

# Public API
__all__ = [
    "ClipLimitReachedError",
    "ClipRecord",
    "ClipSinkError",
    "ClipSinkFactory",
    "ClipSinkInterface",
    "LocalClipSink",
    "create_clip_sink",
]
