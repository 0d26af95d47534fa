"""
Clip Recorder

Interactive recorder for one profile clip.
Opens a preview window, records a 15-60 second clip and stores it for the
configured user.

Controls:
- SPACE: Start recording / stop recording
- s: Switch front/back camera (not while recording)
- r: Retry after a camera error
- q / ESC: Close without recording

State Flow:
    ACQUIRING → READY → RECORDING → FINALIZING → COMPLETED
                  ↑                      ↓
                  +---- (too short) -----+

Usage:
    python record_clip.py --user alice
    python record_clip.py --mock           # synthetic camera, no hardware
"""

import argparse
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import cv2
import numpy as np

from config.settings import (
    CLIP_OUTPUT_PATH,
    DEFAULT_USER_ID,
    LOG_DIR,
    LOG_FILE,
    LOG_LEVEL,
    MAX_CLIP_DURATION,
    MIN_CLIP_DURATION,
)
from capture import CaptureState, Facing, VideoCaptureSession
from capture.constants import duration_hint, format_clock
from capture.factory import CaptureFactory
from capture.implementations.thread_scheduler import ThreadScheduler
from upload.factory import ClipSinkFactory
from upload.interfaces.clip_sink_interface import ClipSinkError, ClipSinkInterface

WINDOW_NAME = "Record Clip"

# Key codes from cv2.waitKey
KEY_SPACE = 32
KEY_ESC = 27

# Overlay colours (BGR)
COLOR_TEXT = (255, 255, 255)
COLOR_RECORDING = (0, 0, 255)
COLOR_WARNING = (0, 200, 255)

# Shown while no camera frame is available
PLACEHOLDER_SIZE = (360, 640)  # (width, height)


def setup_logging(level: str = LOG_LEVEL) -> None:
    """
    Setup logging with rotation.

    Logs to both console and file with rotation:
    - Daily rotation
    - Keep 7 days of logs
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    # Console handler (stdout)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_format = logging.Formatter("%(message)s | %(name)s")
    console_handler.setFormatter(console_format)
    logger.addHandler(console_handler)

    file_format = logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s | %(name)s",
    )

    log_file = Path(LOG_DIR) / LOG_FILE
    try:
        file_handler = logging.handlers.TimedRotatingFileHandler(
            str(log_file),
            when="midnight",
            interval=1,
            backupCount=7,
            encoding="utf-8",
        )
    except (PermissionError, FileNotFoundError):
        # Fallback to local logs directory if LOG_DIR is not writable
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        fallback_log = logs_dir / LOG_FILE
        logger.warning(f"Cannot write to {log_file}, using fallback: {fallback_log}")
        file_handler = logging.handlers.TimedRotatingFileHandler(
            str(fallback_log),
            when="midnight",
            interval=1,
            backupCount=7,
            encoding="utf-8",
        )

    file_handler.setLevel(level)
    file_handler.setFormatter(file_format)
    logger.addHandler(file_handler)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Record a short profile video clip")
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use a synthetic camera and in-memory encoder (no hardware needed)",
    )
    parser.add_argument(
        "--facing",
        choices=[f.value for f in Facing],
        default=Facing.FRONT.value,
        help="Camera to start with (default: front)",
    )
    parser.add_argument("--user", default=DEFAULT_USER_ID, help="Owner of the clip")
    parser.add_argument(
        "--output",
        type=Path,
        default=CLIP_OUTPUT_PATH,
        help=f"Clip directory (default: {CLIP_OUTPUT_PATH})",
    )
    parser.add_argument("--min-duration", type=int, default=MIN_CLIP_DURATION)
    parser.add_argument("--max-duration", type=int, default=MAX_CLIP_DURATION)
    parser.add_argument("--log-level", default=LOG_LEVEL)
    return parser.parse_args(argv)


def build_session(
    args: argparse.Namespace,
) -> Tuple[VideoCaptureSession, ClipSinkInterface]:
    """
    Wire a capture session to a clip sink from command-line options.

    Mock mode still runs on real threads so the window behaves like a
    live camera.
    """
    mode = "mock" if args.mock else "auto"
    scheduler = ThreadScheduler()
    session = VideoCaptureSession(
        media_device=CaptureFactory.create_media_device(mode=mode, scheduler=scheduler),
        encoder=CaptureFactory.create_encoder(mode=mode),
        scheduler=scheduler,
        min_duration_seconds=args.min_duration,
        max_duration_seconds=args.max_duration,
        facing=Facing(args.facing),
    )
    sink = ClipSinkFactory.create_sink(
        mode="local",
        base_path=args.output,
        user_id=args.user,
    )
    session.on_cancelled = sink.on_cancelled
    return session, sink


def handle_key(session: VideoCaptureSession, key: int) -> bool:
    """
    Apply one key press to the session.

    Returns:
        False when the recorder should close
    """
    if key in (ord("q"), KEY_ESC):
        if session.cancel():
            return False
        print("Stop the recording before closing")
        return True

    if key == KEY_SPACE:
        if session.state == CaptureState.RECORDING:
            session.stop_recording()
        elif session.state == CaptureState.READY:
            session.start_recording()
    elif key == ord("s"):
        session.switch_camera()
    elif key == ord("r") and session.state == CaptureState.ERROR:
        session.retry()

    return session.state != CaptureState.COMPLETED


def draw_overlay(frame: np.ndarray, session: VideoCaptureSession) -> np.ndarray:
    """Draw state, timer and messages onto a copy of the preview frame."""
    canvas = frame.copy()
    height = canvas.shape[0]
    font = cv2.FONT_HERSHEY_SIMPLEX

    if session.state == CaptureState.RECORDING:
        cv2.circle(canvas, (20, 25), 8, COLOR_RECORDING, -1)
        cv2.putText(
            canvas, format_clock(session.elapsed_seconds),
            (36, 32), font, 0.7, COLOR_TEXT, 2,
        )
        cv2.putText(
            canvas, f"{session.remaining_seconds}s left",
            (10, 60), font, 0.5, COLOR_TEXT, 1,
        )
    else:
        cv2.putText(
            canvas, session.state.value.upper(),
            (10, 30), font, 0.6, COLOR_TEXT, 2,
        )
        if session.state == CaptureState.READY:
            hint = duration_hint(session.min_duration_seconds, session.max_duration_seconds)
            cv2.putText(canvas, hint, (10, height - 20), font, 0.45, COLOR_TEXT, 1)

    message = session.error_message or session.warning_message
    if message:
        cv2.putText(canvas, message, (10, height // 2), font, 0.45, COLOR_WARNING, 1)

    return canvas


def run(session: VideoCaptureSession, sink: ClipSinkInterface) -> int:
    """
    Preview loop. Returns a process exit code.
    """
    logger = logging.getLogger(__name__)
    placeholder = np.zeros((PLACEHOLDER_SIZE[1], PLACEHOLDER_SIZE[0], 3), dtype=np.uint8)

    session.start_camera()
    try:
        keep_running = True
        while keep_running:
            frame = session.get_preview_frame()
            cv2.imshow(WINDOW_NAME, draw_overlay(
                frame if frame is not None else placeholder,
                session,
            ))
            key = cv2.waitKey(30) & 0xFF
            if key == 0xFF:
                # No key pressed, auto-stop may still have completed the clip
                keep_running = session.state != CaptureState.COMPLETED
            else:
                keep_running = handle_key(session, key)
    finally:
        session.cleanup()
        session.scheduler.cleanup()
        session.media_device.cleanup()
        cv2.destroyAllWindows()

    result = session.last_result
    if result is None:
        print("Closed without recording")
        return 0

    try:
        record = sink.on_recorded(result.blob, result.duration_seconds)
    except ClipSinkError as e:
        logger.error(f"Could not store clip: {e}")
        print(f"Could not store clip: {e}")
        return 1

    print(f"Saved {record.duration}s clip to {record.video_path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the recorder.

    Sets up logging, checks the user still has a free clip slot and runs
    the preview loop.
    """
    args = parse_args(argv)
    setup_logging(args.log_level)

    logger = logging.getLogger(__name__)
    logger.info("=" * 60)
    logger.info("Clip Recorder Starting")
    logger.info("=" * 60)

    try:
        session, sink = build_session(args)
    except ValueError as e:
        print(f"Invalid options: {e}")
        return 2

    if sink.remaining_slots() == 0:
        print("Maximum clips reached. Delete a clip before recording a new one.")
        return 1

    try:
        return run(session, sink)
    except Exception as e:
        logger.critical(f"Fatal error in main: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
