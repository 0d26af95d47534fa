"""
Capture Utilities Package

Exposes shared utility functions for capture operations.
"""

from capture.utils.frame_utils import (
    apply_transform,
    elapsed_whole_seconds,
    mirror_frame,
    select_encoding_format,
    to_milliseconds,
)

# Public API
__all__ = [
    "apply_transform",
    "elapsed_whole_seconds",
    "mirror_frame",
    "select_encoding_format",
    "to_milliseconds",
]
