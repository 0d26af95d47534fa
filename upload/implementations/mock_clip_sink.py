"""
Mock Clip Sink Implementation

In-memory clip sink for testing without touching the filesystem.
Similar to MockEncoder/MockMediaDevice in the capture module.
"""

import logging
from datetime import datetime
from typing import List, Tuple
from uuid import uuid4

from upload.constants import MAX_PROFILE_CLIPS
from upload.interfaces.clip_sink_interface import (
    ClipLimitReachedError,
    ClipRecord,
    ClipSinkInterface,
)
from upload.utils.clip_utils import generate_clip_filename, sniff_extension


class MockClipSink(ClipSinkInterface):
    """
    Mock clip sink for testing.

    Keeps every received clip in memory so tests can check what a capture
    session handed off, and how many times.
    """

    def __init__(self, max_clips: int = MAX_PROFILE_CLIPS, user_id: str = "mock-user"):
        self.logger = logging.getLogger(__name__)
        self.max_clips = max_clips
        self.user_id = user_id

        # Track history for testing
        self.recorded: List[Tuple[bytes, int]] = []
        self.cancelled_count = 0
        self._records: List[ClipRecord] = []

        self.logger.info(f"Mock Clip Sink initialized (max: {max_clips})")

    def on_recorded(self, blob: bytes, duration_seconds: int) -> ClipRecord:
        if len(self._records) >= self.max_clips:
            raise ClipLimitReachedError(f"Mock sink full ({self.max_clips} clips)")

        now = datetime.now()
        order_index = len(self._records)
        record = ClipRecord(
            id=uuid4().hex,
            user_id=self.user_id,
            video_path=generate_clip_filename(order_index, sniff_extension(blob), now),
            duration=int(round(duration_seconds)),
            order_index=order_index,
            created_at=now.isoformat(),
        )
        self.recorded.append((blob, duration_seconds))
        self._records.append(record)
        self.logger.info(f"[MOCK] Clip received ({duration_seconds}s, {len(blob)} bytes)")
        return record

    def on_cancelled(self) -> None:
        self.cancelled_count += 1
        self.logger.info("[MOCK] Recording cancelled")

    def list_clips(self) -> List[ClipRecord]:
        return list(self._records)

    def remaining_slots(self) -> int:
        return max(0, self.max_clips - len(self._records))

    # =========================================================================
    # TESTING HELPER METHODS (not part of ClipSinkInterface)
    # =========================================================================

    def get_recorded_count(self) -> int:
        return len(self.recorded)

    def reset(self) -> None:
        self.recorded.clear()
        self._records.clear()
        self.cancelled_count = 0
