"""
Upload Constants

Centralized configuration for the clip sink module.
Following the same pattern as capture/constants.py for consistency.
"""

from config.settings import (
    CLIP_FILENAME_PATTERN,
    CLIP_METADATA_FILE,
    CLIP_OUTPUT_PATH,
    DEFAULT_USER_ID,
    MAX_PROFILE_CLIPS,
)

__all__ = [
    "CLIP_FILENAME_PATTERN",
    "CLIP_METADATA_FILE",
    "CLIP_OUTPUT_PATH",
    "DEFAULT_USER_ID",
    "FALLBACK_EXTENSION",
    "MAX_PROFILE_CLIPS",
    "METADATA_VERSION",
    "MP4_FTYP_OFFSET",
    "MP4_FTYP_TAG",
    "WEBM_EBML_MAGIC",
]

# =============================================================================
# CONTAINER DETECTION
# =============================================================================

# Matroska/WebM files start with the EBML header ID
WEBM_EBML_MAGIC = b"\x1a\x45\xdf\xa3"

# MP4 files carry an "ftyp" box right after the 4-byte box size
MP4_FTYP_TAG = b"ftyp"
MP4_FTYP_OFFSET = 4

# Extension used when the container cannot be recognised
FALLBACK_EXTENSION = "webm"

# =============================================================================
# METADATA
# =============================================================================

# Bumped when the clips.json layout changes
METADATA_VERSION = 1
