"""
Capture Models Package

Data carried between the capture components.
"""

from capture.models.media_stream import AudioTrack, MediaStream, MediaTrack, VideoTrack
from capture.models.recording_result import RecordingResult

# Public API
__all__ = [
    "AudioTrack",
    "MediaStream",
    "MediaTrack",
    "RecordingResult",
    "VideoTrack",
]
