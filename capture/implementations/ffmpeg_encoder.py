"""
FFmpeg Encoder Implementation

Real clip encoding using an FFmpeg subprocess.
Video frames are piped to FFmpeg as raw BGR on stdin while recording.
Microphone audio is buffered and muxed in once the video pass is done.

This wraps FFmpeg to match our EncoderInterface.
"""

import logging
import queue
import shutil
import subprocess
import tempfile
import threading
import time
from pathlib import Path
from typing import List, Optional, Set, Tuple

import cv2
import numpy as np
import soundfile as sf

from config.settings import (
    AUDIO_BITRATE,
    ENCODER_QUEUE_SIZE,
    FFMPEG_BIN,
    FFMPEG_FINALIZE_TIMEOUT,
    FFMPEG_PROBE_TIMEOUT,
)
from capture.constants import COMPOSITING_FPS, EncodingFormat
from capture.interfaces.encoder_interface import (
    EncoderHandle,
    EncoderInterface,
    EncodingError,
    RecorderUnavailableError,
)
from capture.models.media_stream import MediaStream


def build_video_command(
    ffmpeg_bin: str,
    fmt: EncodingFormat,
    size: Tuple[int, int],
    fps: int,
    bitrate: int,
    output_file: Path,
) -> List[str]:
    """
    FFmpeg command encoding raw BGR frames from stdin.

    Args:
        size: (width, height) of the piped frames
    """
    width, height = size
    return [
        ffmpeg_bin, "-hide_banner", "-loglevel", "error", "-y",
        "-f", "rawvideo", "-pix_fmt", "bgr24",
        "-s", f"{width}x{height}", "-r", str(fps), "-i", "-",
        "-an",
        "-c:v", fmt.video_codec, "-b:v", str(bitrate),
        *fmt.extra_video_args,
        "-pix_fmt", "yuv420p",
        "-f", fmt.container,
        str(output_file),
    ]


def build_mux_command(
    ffmpeg_bin: str,
    fmt: EncodingFormat,
    video_file: Path,
    audio_file: Path,
    output_file: Path,
) -> List[str]:
    """FFmpeg command adding an audio track to an encoded video file."""
    command = [
        ffmpeg_bin, "-hide_banner", "-loglevel", "error", "-y",
        "-i", str(video_file), "-i", str(audio_file),
        "-map", "0:v:0", "-map", "1:a:0",
        "-c:v", "copy",
        "-c:a", fmt.audio_codec, "-b:a", AUDIO_BITRATE,
        "-shortest",
    ]
    if fmt.container == "mp4":
        command += ["-movflags", "+faststart"]
    command += ["-f", fmt.container, str(output_file)]
    return command


def parse_encoder_list(output: str) -> Set[str]:
    """
    Extract encoder names from `ffmpeg -encoders` output.

    Example:
        " V....D libx264    libx264 H.264 ..." -> {"libx264"}
    """
    names = set()
    in_table = False
    for line in output.splitlines():
        stripped = line.strip()
        if stripped.startswith("------"):
            in_table = True
            continue
        if not in_table or not stripped:
            continue
        parts = stripped.split()
        if len(parts) >= 2:
            names.add(parts[1])
    return names


class FFmpegEncoderHandle(EncoderHandle):
    """Encoding in progress: temp files, FFmpeg process, frame queue."""

    def __init__(
        self,
        stream: MediaStream,
        fmt: EncodingFormat,
        bitrate: int,
        work_dir: Path,
    ):
        super().__init__(stream, fmt, bitrate)
        self.work_dir = work_dir
        self.video_file = work_dir / f"video.{fmt.extension}"
        self.process: Optional[subprocess.Popen] = None
        self.frame_size: Optional[Tuple[int, int]] = None
        self.frames: "queue.Queue[Optional[Tuple[np.ndarray, float]]]" = queue.Queue(
            maxsize=ENCODER_QUEUE_SIZE
        )
        self.writer: Optional[threading.Thread] = None
        self.frames_dropped = 0
        self.audio_blocks: List[np.ndarray] = []
        self._audio_lock = threading.Lock()

    def on_video(self, frame: np.ndarray) -> None:
        try:
            self.frames.put_nowait((frame, time.monotonic()))
        except queue.Full:
            self.frames_dropped += 1

    def on_audio(self, block: np.ndarray) -> None:
        with self._audio_lock:
            self.audio_blocks.append(block)

    def take_audio(self) -> Optional[np.ndarray]:
        with self._audio_lock:
            if not self.audio_blocks:
                return None
            samples = np.concatenate(self.audio_blocks, axis=0)
            self.audio_blocks = []
        return samples


class FFmpegEncoder(EncoderInterface):
    """
    Clip encoder using FFmpeg.

    A writer thread feeds FFmpeg at a constant frame rate: frames are
    repeated or skipped so the clip plays back in real time whatever rate
    the camera actually delivers.

    Usage:
        encoder = FFmpegEncoder()
        handle = encoder.begin_encoding(stream, fmt, 2_500_000)
        # ... recording happens in background ...
        blob = encoder.finish_encoding(handle)
    """

    def __init__(
        self,
        ffmpeg_bin: str = FFMPEG_BIN,
        fps: int = COMPOSITING_FPS,
        finalize_timeout: float = FFMPEG_FINALIZE_TIMEOUT,
    ):
        """
        Initialize FFmpeg encoder.

        Args:
            ffmpeg_bin: FFmpeg executable name or path
            fps: Output frame rate
            finalize_timeout: Seconds to wait for FFmpeg to finish a file
        """
        self.logger = logging.getLogger(__name__)
        self.ffmpeg_bin = ffmpeg_bin
        self.fps = fps
        self.finalize_timeout = finalize_timeout

        self._available_encoders: Optional[Set[str]] = None
        self._handles: List[FFmpegEncoderHandle] = []

        self.logger.info(f"FFmpeg Encoder initialized (binary: {ffmpeg_bin}, fps: {fps})")

    # =========================================================================
    # FORMAT PROBING
    # =========================================================================

    def _probe_encoders(self) -> Set[str]:
        """List the codecs this FFmpeg build can encode. Cached."""
        if self._available_encoders is not None:
            return self._available_encoders

        try:
            result = subprocess.run(
                [self.ffmpeg_bin, "-hide_banner", "-encoders"],
                check=False,
                capture_output=True,
                text=True,
                timeout=FFMPEG_PROBE_TIMEOUT,
            )
            encoders = parse_encoder_list(result.stdout)
        except FileNotFoundError:
            self.logger.warning(f"FFmpeg not found: {self.ffmpeg_bin}")
            encoders = set()
        except subprocess.TimeoutExpired:
            self.logger.warning("FFmpeg encoder probe timed out")
            encoders = set()

        self.logger.debug(f"FFmpeg reports {len(encoders)} encoders")
        self._available_encoders = encoders
        return encoders

    def is_format_supported(self, fmt: EncodingFormat) -> bool:
        encoders = self._probe_encoders()
        return fmt.video_codec in encoders and fmt.audio_codec in encoders

    def is_available(self) -> bool:
        if not shutil.which(self.ffmpeg_bin):
            self.logger.warning("FFmpeg not found in PATH")
            return False
        return bool(self._probe_encoders())

    # =========================================================================
    # ENCODING
    # =========================================================================

    def begin_encoding(
        self,
        stream: MediaStream,
        fmt: EncodingFormat,
        bitrate: int,
    ) -> EncoderHandle:
        """
        Attach to the stream and start the writer thread.

        FFmpeg itself is launched on the first frame, once the frame size
        is known.
        """
        if not self.is_format_supported(fmt):
            raise RecorderUnavailableError(
                f"FFmpeg cannot encode {fmt.mime_type} "
                f"({fmt.video_codec}/{fmt.audio_codec})"
            )

        work_dir = Path(tempfile.mkdtemp(prefix="clip_"))
        handle = FFmpegEncoderHandle(stream, fmt, bitrate, work_dir)
        handle.writer = threading.Thread(
            target=self._write_frames,
            args=(handle,),
            daemon=True,
            name="FFmpegWriter",
        )
        handle.writer.start()

        stream.video.add_listener(handle.on_video)
        if stream.audio is not None:
            stream.audio.add_listener(handle.on_audio)

        self._handles.append(handle)
        self.logger.info(
            f"Encoding started ({fmt.mime_type}, {bitrate // 1000} kbps, "
            f"work dir: {work_dir})"
        )
        return handle

    def _start_process(self, handle: FFmpegEncoderHandle, size: Tuple[int, int]) -> None:
        command = build_video_command(
            self.ffmpeg_bin,
            handle.format,
            size,
            self.fps,
            handle.bitrate,
            handle.video_file,
        )
        self.logger.debug(f"FFmpeg command: {' '.join(command)}")
        handle.process = subprocess.Popen(
            command,
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
        )
        handle.frame_size = size
        self.logger.info(
            f"FFmpeg started (PID: {handle.process.pid}, {size[0]}x{size[1]})"
        )

    def _write_frames(self, handle: FFmpegEncoderHandle) -> None:
        """Writer thread: pace frames into FFmpeg's stdin."""
        first_timestamp: Optional[float] = None
        written = 0

        while True:
            item = handle.frames.get()
            if item is None:
                break
            frame, timestamp = item

            if handle.process is None:
                height, width = frame.shape[:2]
                try:
                    self._start_process(handle, (width, height))
                except OSError as e:
                    handle.error = f"Could not start FFmpeg: {e}"
                    self.logger.error(handle.error)
                    break
                first_timestamp = timestamp

            width, height = handle.frame_size
            if frame.shape[1] != width or frame.shape[0] != height:
                frame = cv2.resize(frame, (width, height))

            # Constant output rate: repeat or skip to match wall time
            due = int((timestamp - first_timestamp) * self.fps) + 1
            repeats = due - written
            if repeats <= 0:
                continue

            data = np.ascontiguousarray(frame, dtype=np.uint8).tobytes()
            try:
                for _ in range(repeats):
                    handle.process.stdin.write(data)
                written += repeats
                handle.frames_encoded = written
            except (BrokenPipeError, OSError) as e:
                handle.error = f"FFmpeg stopped accepting frames: {e}"
                self.logger.error(handle.error)
                break

    def _detach(self, handle: FFmpegEncoderHandle) -> None:
        handle.stream.video.remove_listener(handle.on_video)
        if handle.stream.audio is not None:
            handle.stream.audio.remove_listener(handle.on_audio)

    def _stop_writer(self, handle: FFmpegEncoderHandle) -> None:
        if handle.writer is None or not handle.writer.is_alive():
            return
        try:
            handle.frames.put(None, timeout=self.finalize_timeout)
        except queue.Full:
            self.logger.warning("FFmpeg writer not draining frames")
        handle.writer.join(timeout=self.finalize_timeout)

    def finish_encoding(self, handle: EncoderHandle) -> bytes:
        """
        Flush FFmpeg, mux audio and return the finished clip.

        Blocks until FFmpeg has written the file (bounded by finalize_timeout).
        """
        assert isinstance(handle, FFmpegEncoderHandle)
        self._detach(handle)
        self._stop_writer(handle)

        try:
            if handle.error:
                raise EncodingError(handle.error)
            if handle.process is None:
                raise EncodingError("No video frames received")

            self.logger.info(
                f"Finalizing clip ({handle.frames_encoded} frames, "
                f"{handle.frames_dropped} dropped)"
            )
            try:
                # Closes stdin, FFmpeg writes the trailer and exits
                _, stderr = handle.process.communicate(timeout=self.finalize_timeout)
            except subprocess.TimeoutExpired:
                self.logger.warning("FFmpeg didn't finish in time, force killing")
                handle.process.kill()
                handle.process.wait()
                raise EncodingError("FFmpeg timed out finalizing the clip")

            if handle.process.returncode != 0:
                error_msg = stderr.decode("utf-8", errors="ignore").strip()
                raise EncodingError(
                    f"FFmpeg exited with code {handle.process.returncode}: {error_msg}"
                )

            output_file = handle.video_file
            audio = handle.take_audio()
            if audio is not None:
                output_file = self._mux_audio(handle, audio)

            blob = output_file.read_bytes()
            self.logger.info(
                f"Clip encoded: {len(blob) / (1024 * 1024):.2f} MB "
                f"({handle.format.mime_type})"
            )
            return blob

        finally:
            handle.finished = True
            self._discard(handle)

    def _mux_audio(self, handle: FFmpegEncoderHandle, audio: np.ndarray) -> Path:
        """Write buffered microphone audio to WAV and mux it into the clip."""
        audio_track = handle.stream.audio
        wav_file = handle.work_dir / "audio.wav"
        output_file = handle.work_dir / f"clip.{handle.format.extension}"

        sf.write(str(wav_file), audio, audio_track.sample_rate)

        command = build_mux_command(
            self.ffmpeg_bin,
            handle.format,
            handle.video_file,
            wav_file,
            output_file,
        )
        self.logger.debug(f"FFmpeg mux command: {' '.join(command)}")
        try:
            result = subprocess.run(
                command,
                check=False,
                capture_output=True,
                timeout=self.finalize_timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise EncodingError("FFmpeg timed out muxing audio") from e

        if result.returncode != 0:
            error_msg = result.stderr.decode("utf-8", errors="ignore").strip()
            raise EncodingError(f"Audio mux failed: {error_msg}")

        return output_file

    def abort_encoding(self, handle: EncoderHandle) -> None:
        """Kill FFmpeg and delete everything. Never raises."""
        if not isinstance(handle, FFmpegEncoderHandle) or handle.finished:
            return

        self.logger.info("Aborting encoding")
        self._detach(handle)
        handle.finished = True

        if handle.process is not None and handle.process.poll() is None:
            handle.process.kill()
            handle.process.wait()
        try:
            handle.frames.put_nowait(None)
        except queue.Full:
            pass
        if handle.writer is not None:
            handle.writer.join(timeout=2.0)

        self._discard(handle)

    def _discard(self, handle: FFmpegEncoderHandle) -> None:
        if handle.process is not None and handle.process.poll() is None:
            handle.process.kill()
            handle.process.wait()
        if handle.process is not None and handle.process.stderr is not None:
            handle.process.stderr.close()
        shutil.rmtree(handle.work_dir, ignore_errors=True)
        if handle in self._handles:
            self._handles.remove(handle)

    def cleanup(self) -> None:
        """
        Abort any encoding still running.
        """
        self.logger.info("Cleaning up FFmpeg Encoder")
        for handle in list(self._handles):
            self.abort_encoding(handle)
        self.logger.info("FFmpeg Encoder cleanup complete")
