"""
Upload Factory

Factory pattern for creating clip sink implementations.
Follows same pattern as capture/factory.py for consistency.

Automatically configures from environment variables.
"""

import logging
from pathlib import Path
from typing import Literal, Optional

from upload.constants import CLIP_OUTPUT_PATH, DEFAULT_USER_ID
from upload.implementations.local_clip_sink import LocalClipSink
from upload.implementations.mock_clip_sink import MockClipSink
from upload.interfaces.clip_sink_interface import ClipSinkInterface

# Type alias
SinkMode = Literal["local", "mock"]


class ClipSinkFactory:
    """
    Factory for creating clip sinks.

    Reads configuration from environment variables (via config.settings):
    - CLIP_OUTPUT_PATH: Root directory for stored clips
    - CLIP_USER_ID: Owner of the clips

    Usage:
        # Files under CLIP_OUTPUT_PATH
        sink = ClipSinkFactory.create_sink()

        # Force mock for testing
        sink = ClipSinkFactory.create_sink(mode="mock")
    """

    _logger = logging.getLogger(__name__)

    @classmethod
    def create_sink(
        cls,
        mode: SinkMode = "local",
        base_path: Optional[Path] = None,
        user_id: Optional[str] = None,
    ) -> ClipSinkInterface:
        """
        Create a clip sink.

        Args:
            mode: "local" (files on disk) or "mock" (in memory)
            base_path: Override CLIP_OUTPUT_PATH
            user_id: Override CLIP_USER_ID

        Returns:
            ClipSinkInterface implementation

        Example:
            sink = ClipSinkFactory.create_sink(user_id="alice")
        """
        if mode == "mock":
            cls._logger.info("Creating Mock Clip Sink (forced)")
            return MockClipSink(user_id=user_id or DEFAULT_USER_ID)

        cls._logger.info("Creating Local Clip Sink")
        return LocalClipSink(
            base_path=base_path or CLIP_OUTPUT_PATH,
            user_id=user_id or DEFAULT_USER_ID,
        )


# Convenience function for quick creation
def create_clip_sink(
    force_mock: bool = False,
    user_id: Optional[str] = None,
) -> ClipSinkInterface:
    """
    Quick sink creation with simple mock override.

    Example:
        sink = create_clip_sink(user_id="alice")
    """
    mode: SinkMode = "mock" if force_mock else "local"
    return ClipSinkFactory.create_sink(mode=mode, user_id=user_id)
