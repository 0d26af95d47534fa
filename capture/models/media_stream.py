"""
Media Stream Models

Push-based audio/video tracks and the stream that groups them.

Producers (camera reader threads, the compositing loop, test fakes) push
data into a track. Consumers (encoders, previews) either subscribe as
listeners or poll the latest frame. Tracks are thread-safe.
"""

import logging
import threading
import uuid
from typing import Callable, List, Optional, Tuple

import numpy as np

from capture.constants import Facing

TrackListener = Callable[[np.ndarray], None]


class MediaTrack:
    """
    Base class for a single live track.

    Once stopped a track never becomes live again. Data pushed after stop()
    is dropped.
    """

    kind = "track"

    def __init__(self, label: str = ""):
        self.logger = logging.getLogger(__name__)
        self.label = label or self.kind
        self._lock = threading.Lock()
        self._listeners: List[TrackListener] = []
        self._ended_callbacks: List[Callable[[], None]] = []
        self._live = True
        self._items_delivered = 0

    @property
    def is_live(self) -> bool:
        return self._live

    @property
    def items_delivered(self) -> int:
        return self._items_delivered

    def add_listener(self, listener: TrackListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: TrackListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def add_ended_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback fired once when the track stops."""
        with self._lock:
            self._ended_callbacks.append(callback)

    def push(self, data: np.ndarray) -> bool:
        """
        Deliver data to the track.

        Returns:
            True if delivered, False if the track has already stopped
        """
        with self._lock:
            if not self._live:
                return False
            self._store(data)
            self._items_delivered += 1
            listeners = list(self._listeners)

        # Listeners run outside the lock so they may touch the track
        for listener in listeners:
            try:
                listener(data)
            except Exception as e:
                self.logger.error(f"Error in {self.label} listener: {e}")
        return True

    def stop(self) -> None:
        """Stop the track. Safe to call more than once."""
        with self._lock:
            if not self._live:
                return
            self._live = False
            self._listeners.clear()
            callbacks = list(self._ended_callbacks)
            self._ended_callbacks.clear()

        self.logger.debug(f"Track stopped: {self.label}")
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                self.logger.error(f"Error in {self.label} ended callback: {e}")

    def _store(self, data: np.ndarray) -> None:
        """Hook for subclasses, called with the lock held."""
        pass


class VideoTrack(MediaTrack):
    """
    Video track carrying HxWx3 uint8 frames (BGR, OpenCV order).

    Keeps the most recent frame for preview and compositing, and records the
    frame dimensions of the first delivered frame (the "metadata").
    """

    kind = "video"

    def __init__(self, label: str = ""):
        super().__init__(label)
        self._latest: Optional[np.ndarray] = None
        self._dimensions: Optional[Tuple[int, int]] = None
        self._metadata_event = threading.Event()

    def _store(self, data: np.ndarray) -> None:
        self._latest = data
        if self._dimensions is None:
            height, width = data.shape[:2]
            self._dimensions = (int(width), int(height))
            self._metadata_event.set()

    def latest_frame(self) -> Optional[np.ndarray]:
        with self._lock:
            return self._latest

    @property
    def dimensions(self) -> Optional[Tuple[int, int]]:
        """(width, height) of the first frame, None until one arrives."""
        return self._dimensions

    def wait_for_dimensions(self, timeout: float) -> Optional[Tuple[int, int]]:
        """
        Block until the first frame arrives.

        Returns:
            (width, height), or None on timeout or if the track stopped
        """
        if self._metadata_event.wait(timeout):
            return self._dimensions
        return None

    def stop(self) -> None:
        super().stop()
        # Wake any waiter, dimensions stay None if no frame ever came
        self._metadata_event.set()


class AudioTrack(MediaTrack):
    """Audio track carrying float32 blocks shaped (samples, channels)."""

    kind = "audio"

    def __init__(self, sample_rate: int, channels: int, label: str = ""):
        super().__init__(label)
        self.sample_rate = sample_rate
        self.channels = channels


class MediaStream:
    """
    A video track plus an optional audio track.

    Streams handed out by a media device own their tracks. Derived streams
    (see with_video) share the parent's audio track and must not stop it.
    """

    def __init__(
        self,
        video: VideoTrack,
        audio: Optional[AudioTrack] = None,
        facing: Optional[Facing] = None,
        stream_id: Optional[str] = None,
        derived: bool = False,
    ):
        self.video = video
        self.audio = audio
        self.facing = facing
        self.stream_id = stream_id or uuid.uuid4().hex
        self.derived = derived

    @property
    def is_live(self) -> bool:
        return self.video.is_live

    def with_video(self, video: VideoTrack) -> "MediaStream":
        """
        Build a derived stream: new video source, same audio track.

        Used to record composited frames together with the camera's
        unmodified microphone audio.
        """
        return MediaStream(
            video=video,
            audio=self.audio,
            facing=self.facing,
            derived=True,
        )

    def stop(self) -> None:
        """Stop owned tracks. A derived stream only stops its own video."""
        self.video.stop()
        if self.audio is not None and not self.derived:
            self.audio.stop()

    def __repr__(self) -> str:
        facing = self.facing.value if self.facing else "none"
        return (
            f"MediaStream(id={self.stream_id[:8]}, facing={facing}, "
            f"live={self.is_live}, audio={self.audio is not None})"
        )
