"""
Mock Encoder Implementation

In-memory encoder for testing without FFmpeg.
Keeps every frame it receives so tests can inspect what would have been
encoded (mirrored or not, how many frames, audio present or not).

This is a "Fake" (test double) - it has working logic but no real codec.
"""

import json
import logging
import threading
from typing import List, Optional, Set

import numpy as np

from capture.constants import ENCODING_FORMAT_PREFERENCES, EncodingFormat
from capture.interfaces.encoder_interface import (
    EncoderHandle,
    EncoderInterface,
    EncodingError,
    RecorderUnavailableError,
)
from capture.models.media_stream import MediaStream

# WebM files start with the EBML magic number, MP4 with an ftyp box
WEBM_MAGIC = b"\x1a\x45\xdf\xa3"
MP4_MAGIC = b"\x00\x00\x00\x18ftypmp42"


class MockEncoderHandle(EncoderHandle):
    """Handle that stores raw frames and audio blocks in memory."""

    def __init__(self, stream: MediaStream, fmt: EncodingFormat, bitrate: int):
        super().__init__(stream, fmt, bitrate)
        self.frames: List[np.ndarray] = []
        self.audio_blocks: List[np.ndarray] = []
        self._lock = threading.Lock()

    def on_video(self, frame: np.ndarray) -> None:
        with self._lock:
            self.frames.append(frame)
            self.frames_encoded += 1

    def on_audio(self, block: np.ndarray) -> None:
        with self._lock:
            self.audio_blocks.append(block)


class MockEncoder(EncoderInterface):
    """
    Mock encoder for testing.

    Usage:
        encoder = MockEncoder()
        handle = encoder.begin_encoding(stream, fmt, 2_500_000)
        # ... frames pushed to stream.video are collected ...
        blob = encoder.finish_encoding(handle)
    """

    def __init__(self, supported_mime_types: Optional[Set[str]] = None):
        """
        Initialize mock encoder.

        Args:
            supported_mime_types: Formats to report as supported.
                                  None = every format in the preference list.
        """
        self.logger = logging.getLogger(__name__)
        if supported_mime_types is None:
            supported_mime_types = {f.mime_type for f in ENCODING_FORMAT_PREFERENCES}
        self.supported_mime_types = set(supported_mime_types)

        self.active_handle: Optional[MockEncoderHandle] = None
        self.last_handle: Optional[MockEncoderHandle] = None
        self._finished_count = 0
        self._aborted_count = 0

        # Configuration for test scenarios
        self._should_fail_begin = False
        self._should_fail_finish = False
        self._produce_empty_output = False

        self.logger.info(
            f"Mock Encoder initialized ({len(self.supported_mime_types)} formats)"
        )

    def is_format_supported(self, fmt: EncodingFormat) -> bool:
        return fmt.mime_type in self.supported_mime_types

    def begin_encoding(
        self,
        stream: MediaStream,
        fmt: EncodingFormat,
        bitrate: int,
    ) -> EncoderHandle:
        if not self.is_format_supported(fmt):
            raise RecorderUnavailableError(f"Format not supported: {fmt.mime_type}")

        if self._should_fail_begin:
            self.logger.error("[MOCK] Simulated encoder start failure")
            raise EncodingError("Simulated encoder start failure")

        if self.active_handle is not None:
            raise EncodingError("Encoder already running")

        handle = MockEncoderHandle(stream, fmt, bitrate)
        stream.video.add_listener(handle.on_video)
        if stream.audio is not None:
            stream.audio.add_listener(handle.on_audio)

        self.active_handle = handle
        self.last_handle = handle
        self.logger.info(
            f"[MOCK] Encoding started ({fmt.mime_type}, {bitrate // 1000} kbps)"
        )
        return handle

    def _detach(self, handle: MockEncoderHandle) -> None:
        handle.stream.video.remove_listener(handle.on_video)
        if handle.stream.audio is not None:
            handle.stream.audio.remove_listener(handle.on_audio)
        handle.finished = True
        if self.active_handle is handle:
            self.active_handle = None

    def finish_encoding(self, handle: EncoderHandle) -> bytes:
        assert isinstance(handle, MockEncoderHandle)
        self._detach(handle)

        if self._should_fail_finish:
            self.logger.error("[MOCK] Simulated finalize failure")
            raise EncodingError("Simulated finalize failure")

        if self._produce_empty_output:
            return b""

        magic = WEBM_MAGIC if handle.format.container == "webm" else MP4_MAGIC
        summary = {
            "mime_type": handle.format.mime_type,
            "frames": len(handle.frames),
            "audio_blocks": len(handle.audio_blocks),
            "bitrate": handle.bitrate,
        }
        blob = magic + json.dumps(summary).encode("utf-8")

        self._finished_count += 1
        self.logger.info(f"[MOCK] Encoding finished ({len(handle.frames)} frames)")
        return blob

    def abort_encoding(self, handle: EncoderHandle) -> None:
        if not isinstance(handle, MockEncoderHandle) or handle.finished:
            return
        self._detach(handle)
        self._aborted_count += 1
        self.logger.info("[MOCK] Encoding aborted")

    def is_available(self) -> bool:
        return bool(self.supported_mime_types)

    def cleanup(self) -> None:
        if self.active_handle is not None:
            self.abort_encoding(self.active_handle)

    # =========================================================================
    # TESTING HELPER METHODS (not part of EncoderInterface)
    # =========================================================================

    def simulate_begin_failure(self) -> None:
        self._should_fail_begin = True

    def simulate_finish_failure(self) -> None:
        self._should_fail_finish = True

    def simulate_empty_output(self) -> None:
        self._produce_empty_output = True

    def simulate_runtime_error(self, message: str = "Simulated encoder crash") -> None:
        """Mark the running encoding as broken, as a crashed process would."""
        if self.active_handle is not None:
            self.active_handle.error = message

    def reset_test_config(self) -> None:
        self._should_fail_begin = False
        self._should_fail_finish = False
        self._produce_empty_output = False

    def get_finished_count(self) -> int:
        return self._finished_count

    def get_aborted_count(self) -> int:
        return self._aborted_count
