"""
Upload Utilities Package

Exposes helper functions for clip storage.
"""

from upload.utils.clip_utils import generate_clip_filename, sniff_extension

# Public API
__all__ = [
    "generate_clip_filename",
    "sniff_extension",
]
