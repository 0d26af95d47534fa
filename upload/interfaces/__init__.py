"""
Upload Interfaces Package

Exposes abstract interfaces for clip sinks.
"""

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
    "ClipSinkInterface",
]
