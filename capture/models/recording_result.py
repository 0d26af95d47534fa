"""
Recording Result Model

The finished clip a capture session hands to its sink.
"""

from dataclasses import dataclass

from capture.constants import Facing


@dataclass(frozen=True)
class RecordingResult:
    """
    One finished clip.

    Created once, when a recording that met the minimum duration is
    finalized. Nothing else in the capture package keeps a reference to it.
    """

    blob: bytes
    duration_seconds: int  # Whole seconds, floor-rounded
    mime_type: str
    facing: Facing
    frame_count: int = 0

    @property
    def size_bytes(self) -> int:
        return len(self.blob)

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)
