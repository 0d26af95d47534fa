"""
Frame Utilities

Shared helpers for frame transforms, elapsed-time math and format selection.
Extracted here so the compositor, the session and the tests agree on them.
"""

import logging
from typing import Iterable, Optional

import cv2
import numpy as np

from capture.constants import (
    ENCODING_FORMAT_PREFERENCES,
    EncodingFormat,
    FrameTransform,
)
from capture.interfaces.encoder_interface import EncoderInterface

logger = logging.getLogger(__name__)


def mirror_frame(frame: np.ndarray) -> np.ndarray:
    """
    Flip a frame horizontally (reverse pixel columns).

    Example:
        mirrored = mirror_frame(frame)
        assert (mirrored[:, 0] == frame[:, -1]).all()
    """
    return cv2.flip(frame, 1)


def apply_transform(frame: np.ndarray, transform: FrameTransform) -> np.ndarray:
    """
    Apply a compositing transform to one frame.

    IDENTITY returns the input frame unchanged (same object, no copy).
    """
    if transform is FrameTransform.HORIZONTAL_MIRROR:
        return mirror_frame(frame)
    return frame


def to_milliseconds(seconds: float) -> int:
    """Round a clock reading to whole milliseconds."""
    return int(round(seconds * 1000))


def elapsed_whole_seconds(start_time: float, now: float) -> int:
    """
    Whole seconds between two clock readings, floor-rounded.

    Always computed from the start time, never accumulated, so throttled
    or late timer ticks cannot drift. Readings are rounded to milliseconds
    first so float noise cannot turn 20.000 into 19.

    Example:
        elapsed_whole_seconds(10.0, 30.999) -> 20
    """
    elapsed_ms = to_milliseconds(now) - to_milliseconds(start_time)
    return max(0, elapsed_ms // 1000)


def select_encoding_format(
    encoder: EncoderInterface,
    preferences: Iterable[EncodingFormat] = ENCODING_FORMAT_PREFERENCES,
) -> Optional[EncodingFormat]:
    """
    Pick the first format in preference order the encoder supports.

    Args:
        encoder: Encoder to probe
        preferences: Formats, best first

    Returns:
        Selected format, or None if nothing is supported

    Example:
        fmt = select_encoding_format(encoder)
        if fmt is None:
            print("Recording not supported here")
    """
    for fmt in preferences:
        try:
            if encoder.is_format_supported(fmt):
                logger.debug(f"Selected encoding format: {fmt.mime_type}")
                return fmt
        except Exception as e:
            logger.warning(f"Error probing format {fmt.mime_type}: {e}")

    logger.error("No supported encoding format found")
    return None
