"""
Clip Sink Interface

Abstract interface for whatever receives finished clips.
Follows Dependency Inversion Principle - the recorder UI hands clips to this
abstraction, not to a concrete storage or upload service.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Dict, List


@dataclass
class ClipRecord:
    """
    Metadata of one stored clip.

    Attributes:
        id: Unique clip identifier
        user_id: Owner of the clip
        video_path: Where the clip bytes live
        duration: Clip length in whole seconds
        order_index: Position in the owner's clip list (0-based, contiguous)
        created_at: ISO-8601 creation time
    """

    id: str
    user_id: str
    video_path: str
    duration: int
    order_index: int
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClipRecord":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            video_path=data["video_path"],
            duration=int(data["duration"]),
            order_index=int(data["order_index"]),
            created_at=data["created_at"],
        )


class ClipSinkInterface(ABC):
    """
    Abstract base class for clip sinks.

    A capture session reports exactly one outcome per use: a recorded clip
    or a cancellation. Sinks receive that outcome.
    """

    @abstractmethod
    def on_recorded(self, blob: bytes, duration_seconds: int) -> ClipRecord:
        """
        Accept a finished clip.

        Args:
            blob: Encoded clip bytes
            duration_seconds: Clip length in whole seconds

        Returns:
            Record of the stored clip

        Raises:
            ClipLimitReachedError: Owner already has the maximum clip count
            ClipSinkError: Clip could not be stored

        Example:
            session.on_recorded = sink.on_recorded
        """

    @abstractmethod
    def on_cancelled(self) -> None:
        """
        The user closed the recorder without a clip.
        """

    @abstractmethod
    def list_clips(self) -> List[ClipRecord]:
        """
        Stored clips, ordered by order_index.
        """

    @abstractmethod
    def remaining_slots(self) -> int:
        """
        How many more clips can be stored.

        Example:
            if sink.remaining_slots() == 0:
                print("Delete a clip before recording a new one")
        """


class ClipSinkError(Exception):
    """
    Exception raised for clip storage errors.

    Examples:
    - Output directory not writable
    - Metadata file corrupted
    - Empty clip
    """
    pass


class ClipLimitReachedError(ClipSinkError):
    """Owner already has the maximum number of clips"""
    pass
