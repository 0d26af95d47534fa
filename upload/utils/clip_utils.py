"""
Clip Utilities

Helpers for naming and identifying stored clips.
"""

from datetime import datetime

from upload.constants import (
    CLIP_FILENAME_PATTERN,
    FALLBACK_EXTENSION,
    MP4_FTYP_OFFSET,
    MP4_FTYP_TAG,
    WEBM_EBML_MAGIC,
)


def sniff_extension(blob: bytes) -> str:
    """
    Guess the container of an encoded clip from its first bytes.

    Args:
        blob: Encoded clip

    Returns:
        "webm", "mp4", or the fallback extension if unrecognised

    Example:
        sniff_extension(b"\\x1a\\x45\\xdf\\xa3...") -> "webm"
    """
    if blob.startswith(WEBM_EBML_MAGIC):
        return "webm"
    if blob[MP4_FTYP_OFFSET:MP4_FTYP_OFFSET + len(MP4_FTYP_TAG)] == MP4_FTYP_TAG:
        return "mp4"
    return FALLBACK_EXTENSION


def generate_clip_filename(order_index: int, extension: str, now: datetime) -> str:
    """
    Build a clip file name.

    Example:
        generate_clip_filename(2, "webm", now) -> "video_2_1760781234567.webm"
    """
    timestamp_ms = int(now.timestamp() * 1000)
    return CLIP_FILENAME_PATTERN.format(
        order_index=order_index,
        timestamp=timestamp_ms,
        extension=extension,
    )
