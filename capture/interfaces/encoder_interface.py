"""
Encoder Interface

Abstract interface for clip encoders.

Recording is an explicit two-phase operation:
    handle = encoder.begin_encoding(stream, fmt, bitrate)   # starts consuming
    blob = encoder.finish_encoding(handle)                  # assembles the clip

Anything the encoder accumulates in between (compressed chunks, temp files,
audio blocks) is owned by the handle and is gone after finish or abort.
"""

from abc import ABC, abstractmethod
from typing import Optional

from capture.constants import EncodingFormat
from capture.models.media_stream import MediaStream


class EncoderHandle:
    """
    State of one encoding in progress.

    Implementations subclass this to hang their own resources off it.
    The error attribute is set from background threads when encoding breaks
    mid-recording. The capture session polls it on every timer tick.
    """

    def __init__(self, stream: MediaStream, fmt: EncodingFormat, bitrate: int):
        self.stream = stream
        self.format = fmt
        self.bitrate = bitrate
        self.frames_encoded = 0
        self.error: Optional[str] = None
        self.finished = False


class EncoderInterface(ABC):
    """
    Abstract base class for clip encoders.

    Any encoder implementation (FFmpeg, PyAV, in-memory fake, etc.)
    must implement all these methods to work with VideoCaptureSession.
    """

    @abstractmethod
    def is_format_supported(self, fmt: EncodingFormat) -> bool:
        """
        Check if this encoder can produce the given format.

        Used to walk the format preference list at runtime.

        Example:
            if encoder.is_format_supported(fmt):
                handle = encoder.begin_encoding(stream, fmt, 2_500_000)
        """
        pass

    @abstractmethod
    def begin_encoding(
        self,
        stream: MediaStream,
        fmt: EncodingFormat,
        bitrate: int,
    ) -> EncoderHandle:
        """
        Start consuming the stream's tracks.

        NON-BLOCKING - returns as soon as the encoder is attached.

        Args:
            stream: Stream to record (video required, audio optional)
            fmt: Output format (must be supported)
            bitrate: Target video bitrate in bits per second

        Returns:
            Handle to pass to finish_encoding() or abort_encoding()

        Raises:
            RecorderUnavailableError: Format not supported
            EncodingError: Encoder could not start
        """
        pass

    @abstractmethod
    def finish_encoding(self, handle: EncoderHandle) -> bytes:
        """
        Stop consuming and assemble the finished clip.

        May block while the encoder flushes.

        Returns:
            Encoded clip bytes

        Raises:
            EncodingError: Encoder failed, no usable clip
        """
        pass

    @abstractmethod
    def abort_encoding(self, handle: EncoderHandle) -> None:
        """
        Stop consuming and discard everything. Never raises.
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if the encoder can be used at all.

        Returns:
            True if at least one format can be produced
        """
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """
        Abort any encoding still running. Never raises.
        """
        pass


class EncodingError(Exception):
    """
    Exception raised for encoding errors.

    Examples:
    - Encoder process crashed
    - Output could not be assembled
    - Stream has no video frames
    """
    pass


class RecorderUnavailableError(EncodingError):
    """No supported output format, or the encoder is not installed"""
    pass
