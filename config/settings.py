"""
Central Configuration File

ALL configuration values live here. This is the single source of truth.

Guidelines:
- Deploy-specific values can be overridden from the environment or a .env file
- Import these settings in modules: from config.settings import MAX_CLIP_DURATION
- Keep values generic and domain-agnostic
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# =============================================================================
# CLIP CONFIGURATION
# =============================================================================

# Clip Durations (in seconds)
MIN_CLIP_DURATION = int(os.getenv("MIN_CLIP_DURATION", "15"))
MAX_CLIP_DURATION = int(os.getenv("MAX_CLIP_DURATION", "60"))

# How long the "too short" warning stays visible (seconds)
SHORT_CLIP_WARNING_DURATION = 3.0

# Elapsed-time timer resolution (seconds)
TIMER_TICK_INTERVAL = 1.0

# Maximum clips a single profile can hold
MAX_PROFILE_CLIPS = 5

# =============================================================================
# CAMERA CONFIGURATION
# =============================================================================

# OpenCV device indices for each facing direction
# Laptops usually expose a single camera at index 0
FRONT_CAMERA_INDEX = int(os.getenv("FRONT_CAMERA_INDEX", "0"))
BACK_CAMERA_INDEX = int(os.getenv("BACK_CAMERA_INDEX", "1"))

# Portrait resolution preference (9:16)
IDEAL_VIDEO_WIDTH = 1080
IDEAL_VIDEO_HEIGHT = 1920

# Time to wait for the first frame after opening a camera (seconds)
STREAM_METADATA_TIMEOUT = float(os.getenv("STREAM_METADATA_TIMEOUT", "5.0"))

# Consecutive failed reads before a camera is considered lost
MAX_CONSECUTIVE_READ_FAILURES = 30

# =============================================================================
# AUDIO CONFIGURATION
# =============================================================================

CAPTURE_AUDIO = os.getenv("CAPTURE_AUDIO", "1") not in ("0", "false", "False")
AUDIO_INPUT_DEVICE = os.getenv("AUDIO_INPUT_DEVICE") or None  # None = default
AUDIO_SAMPLE_RATE = 48000  # Hz
AUDIO_CHANNELS = 1  # 1 = mono
AUDIO_BLOCKSIZE = 1024
AUDIO_BITRATE = "128k"

# =============================================================================
# ENCODING CONFIGURATION
# =============================================================================

# Frame rate of the mirrored (front camera) compositing loop
COMPOSITING_FPS = 30

# Target video bitrate for predictable upload size (bits per second)
VIDEO_BITRATE = 2_500_000

FFMPEG_BIN = os.getenv("FFMPEG_BIN", "ffmpeg")
FFMPEG_FINALIZE_TIMEOUT = 30.0  # seconds
FFMPEG_PROBE_TIMEOUT = 5.0  # seconds

# Frames buffered between the camera and the encoder process
ENCODER_QUEUE_SIZE = 90

# =============================================================================
# STORAGE CONFIGURATION
# =============================================================================

CLIP_OUTPUT_PATH = Path(os.getenv("CLIP_OUTPUT_PATH", "./profile_videos"))
CLIP_METADATA_FILE = "clips.json"
CLIP_FILENAME_PATTERN = "video_{order_index}_{timestamp}.{extension}"
DEFAULT_USER_ID = os.getenv("CLIP_USER_ID", "local-user")

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "/var/log/clip-recorder")
LOG_FILE = "recorder.log"
