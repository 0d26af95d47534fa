"""
OpenCV Media Device Implementation

Real camera + microphone access.
Video comes from cv2.VideoCapture read on a background thread, audio from
a sounddevice InputStream callback. Both push into the tracks of a
MediaStream.

This wraps OpenCV and PortAudio to match our MediaDeviceInterface.
"""

import logging
import os
import sys
import threading
from typing import Dict, Optional

import cv2
import numpy as np

try:
    import sounddevice as sd

    SOUNDDEVICE_AVAILABLE = True
except (ImportError, OSError):
    # OSError: PortAudio shared library not installed
    SOUNDDEVICE_AVAILABLE = False

from config.settings import (
    AUDIO_BLOCKSIZE,
    AUDIO_CHANNELS,
    AUDIO_INPUT_DEVICE,
    AUDIO_SAMPLE_RATE,
    BACK_CAMERA_INDEX,
    CAPTURE_AUDIO,
    FRONT_CAMERA_INDEX,
    MAX_CONSECUTIVE_READ_FAILURES,
)
from capture.constants import Facing, StreamConstraints
from capture.interfaces.media_device_interface import (
    DeviceAcquisitionError,
    MediaDeviceInterface,
    NoDeviceFoundError,
    PermissionDeniedError,
)
from capture.models.media_stream import AudioTrack, MediaStream, VideoTrack


def video_device_path(index: int) -> str:
    """V4L2 device node for an OpenCV camera index (Linux)."""
    return f"/dev/video{index}"


class _StreamResources:
    """Hardware handles behind one acquired stream."""

    def __init__(self, stream: MediaStream, capture: cv2.VideoCapture):
        self.stream = stream
        self.capture = capture
        self.stop_event = threading.Event()
        self.reader: Optional[threading.Thread] = None
        self.audio: Optional["sd.InputStream"] = None


class OpenCVMediaDevice(MediaDeviceInterface):
    """
    Media device backed by OpenCV (camera) and sounddevice (microphone).

    Usage:
        device = OpenCVMediaDevice()
        stream = device.acquire(Facing.FRONT)
        frame = stream.video.latest_frame()
        device.release(stream)
    """

    def __init__(
        self,
        front_index: int = FRONT_CAMERA_INDEX,
        back_index: int = BACK_CAMERA_INDEX,
        capture_audio: bool = CAPTURE_AUDIO,
        audio_device: Optional[str] = AUDIO_INPUT_DEVICE,
        sample_rate: int = AUDIO_SAMPLE_RATE,
        channels: int = AUDIO_CHANNELS,
    ):
        """
        Initialize media device.

        Args:
            front_index: OpenCV index of the user-facing camera
            back_index: OpenCV index of the world-facing camera
            capture_audio: Open the microphone along with the camera
            audio_device: sounddevice input device (None = system default)
            sample_rate: Microphone sample rate in Hz
            channels: Microphone channel count
        """
        self.logger = logging.getLogger(__name__)

        if capture_audio and not SOUNDDEVICE_AVAILABLE:
            self.logger.warning(
                "sounddevice/PortAudio not available, recording without audio. "
                "Install with: sudo apt-get install libportaudio2"
            )
            capture_audio = False

        # Configuration
        self.camera_indices = {
            Facing.FRONT: front_index,
            Facing.BACK: back_index,
        }
        self.capture_audio = capture_audio
        self.audio_device = audio_device
        self.sample_rate = sample_rate
        self.channels = channels

        # State tracking
        self._resources: Dict[str, _StreamResources] = {}
        self._lock = threading.Lock()

        self.logger.info(
            f"OpenCV Media Device initialized "
            f"(front: {front_index}, back: {back_index}, audio: {capture_audio})"
        )

    def acquire(
        self,
        facing: Facing,
        constraints: Optional[StreamConstraints] = None,
    ) -> MediaStream:
        """
        Open the camera for the given facing, plus the microphone.

        Returns once the devices are open. Frames arrive asynchronously.
        """
        constraints = constraints or StreamConstraints(facing=facing)
        index = self.camera_indices[facing]
        self._check_permissions(index)

        self.logger.info(f"Opening {facing.value} camera (index {index})")
        capture = cv2.VideoCapture(index)
        if not capture.isOpened():
            capture.release()
            if sys.platform.startswith("linux") and os.path.exists(video_device_path(index)):
                raise DeviceAcquisitionError(
                    f"Camera {index} exists but could not be opened (in use?)"
                )
            raise NoDeviceFoundError(f"No camera at index {index}")

        # Preferences only, the camera may ignore them
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.ideal_width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.ideal_height)

        audio_track = None
        if self.capture_audio and constraints.audio:
            audio_track = AudioTrack(
                sample_rate=self.sample_rate,
                channels=self.channels,
                label="microphone",
            )

        stream = MediaStream(
            video=VideoTrack(label=f"camera-{facing.value}"),
            audio=audio_track,
            facing=facing,
        )
        resources = _StreamResources(stream, capture)

        if audio_track is not None:
            # The camera is already open, it must not outlive a failed acquire
            try:
                resources.audio = self._open_microphone(audio_track)
            except (sd.PortAudioError, ValueError) as e:
                capture.release()
                raise DeviceAcquisitionError(f"Microphone unavailable: {e}") from e
            except Exception:
                capture.release()
                raise

        resources.reader = threading.Thread(
            target=self._read_loop,
            args=(stream, resources),
            daemon=True,
            name=f"CameraReader-{facing.value}",
        )
        with self._lock:
            self._resources[stream.stream_id] = resources
        resources.reader.start()

        self.logger.info(f"Stream acquired: {stream}")
        return stream

    def _check_permissions(self, index: int) -> None:
        path = video_device_path(index)
        if os.path.exists(path) and not os.access(path, os.R_OK | os.W_OK):
            raise PermissionDeniedError(
                f"No access to {path} (add the user to the 'video' group)"
            )

    def _open_microphone(self, track: AudioTrack) -> "sd.InputStream":
        def _callback(indata, frames, time_info, status):
            if status:
                self.logger.warning(f"Microphone status: {status}")
            track.push(indata.copy())

        audio = sd.InputStream(
            samplerate=track.sample_rate,
            channels=track.channels,
            dtype="float32",
            blocksize=AUDIO_BLOCKSIZE,
            device=self.audio_device,
            callback=_callback,
        )
        try:
            audio.start()
        except Exception:
            audio.close()
            raise
        self.logger.info(
            f"Microphone opened ({track.sample_rate} Hz, {track.channels} ch)"
        )
        return audio

    def _read_loop(self, stream: MediaStream, resources: _StreamResources) -> None:
        """Read frames until released or the camera stops answering."""
        failures = 0

        while not resources.stop_event.is_set() and stream.is_live:
            ok, frame = resources.capture.read()
            if not ok or frame is None:
                failures += 1
                if failures >= MAX_CONSECUTIVE_READ_FAILURES:
                    self.logger.error(
                        f"Camera stopped delivering frames ({failures} failed reads)"
                    )
                    # Ends the track, the session sees it on its next tick
                    stream.stop()
                    break
                resources.stop_event.wait(0.01)
                continue

            failures = 0
            if frame.ndim == 2:
                frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
            stream.video.push(np.ascontiguousarray(frame))

        self.logger.debug(f"Camera reader exiting for {stream}")

    def release(self, stream: Optional[MediaStream]) -> None:
        """Stop every track and close the hardware. Idempotent."""
        if stream is None:
            return

        stream.stop()

        with self._lock:
            resources = self._resources.pop(stream.stream_id, None)
        if resources is None:
            return

        resources.stop_event.set()
        if resources.reader is not None and resources.reader is not threading.current_thread():
            resources.reader.join(timeout=2.0)

        if resources.audio is not None:
            try:
                resources.audio.stop()
                resources.audio.close()
            except sd.PortAudioError as e:
                self.logger.error(f"Error closing microphone: {e}")

        resources.capture.release()
        self.logger.info(f"Stream released: {stream}")

    def is_available(self) -> bool:
        """Check if the front camera can be opened."""
        index = self.camera_indices[Facing.FRONT]
        if sys.platform.startswith("linux"):
            available = os.path.exists(video_device_path(index))
        else:
            capture = cv2.VideoCapture(index)
            available = capture.isOpened()
            capture.release()

        if not available:
            self.logger.warning(f"Camera not found at index {index}")
        return available

    def cleanup(self) -> None:
        """Release every stream still open."""
        self.logger.info("Cleaning up OpenCV Media Device")
        with self._lock:
            streams = [r.stream for r in self._resources.values()]
        for stream in streams:
            self.release(stream)
        self.logger.info("OpenCV Media Device cleanup complete")

    def get_device_info(self) -> dict:
        """
        Describe the configured devices.

        Returns:
            Dictionary with camera indices and microphone settings
        """
        info = {
            "front_camera": self.camera_indices[Facing.FRONT],
            "back_camera": self.camera_indices[Facing.BACK],
            "audio": self.capture_audio,
            "sample_rate": self.sample_rate,
            "channels": self.channels,
        }
        if self.capture_audio:
            try:
                device = sd.query_devices(self.audio_device, kind="input")
                info["microphone"] = device["name"]
            except (sd.PortAudioError, ValueError) as e:
                info["microphone"] = f"unavailable ({e})"
        return info
