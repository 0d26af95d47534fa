"""
Local Clip Sink Implementation

Concrete implementation of ClipSinkInterface using the local filesystem.
Each user gets a directory holding their clip files plus a clips.json
metadata list.
"""

import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from uuid import uuid4

from upload.constants import (
    CLIP_METADATA_FILE,
    CLIP_OUTPUT_PATH,
    DEFAULT_USER_ID,
    MAX_PROFILE_CLIPS,
    METADATA_VERSION,
)
from upload.interfaces.clip_sink_interface import (
    ClipLimitReachedError,
    ClipRecord,
    ClipSinkError,
    ClipSinkInterface,
)
from upload.utils.clip_utils import generate_clip_filename, sniff_extension


class LocalClipSink(ClipSinkInterface):
    """
    Stores a user's profile clips on disk.

    Layout:
        <base_path>/<user_id>/video_<order_index>_<timestamp_ms>.<ext>
        <base_path>/<user_id>/clips.json

    Usage:
        sink = LocalClipSink(Path("./profile_videos"), user_id="alice")
        session.on_recorded = sink.on_recorded
        for clip in sink.list_clips():
            print(clip.order_index, clip.video_path)
    """

    def __init__(
        self,
        base_path: Path = CLIP_OUTPUT_PATH,
        user_id: str = DEFAULT_USER_ID,
        max_clips: int = MAX_PROFILE_CLIPS,
    ):
        """
        Initialize clip sink.

        Args:
            base_path: Root directory for all users
            user_id: Owner of the clips stored through this sink
            max_clips: Maximum clips the user may hold

        Raises:
            ValueError: If user_id is empty or not a plain directory name
        """
        if not user_id or user_id in (".", "..") or "/" in user_id or "\\" in user_id:
            raise ValueError(f"Invalid user id: {user_id!r}")

        self.logger = logging.getLogger(__name__)
        self.base_path = Path(base_path)
        self.user_id = user_id
        self.max_clips = max_clips
        self.user_dir = self.base_path / user_id
        self.metadata_file = self.user_dir / CLIP_METADATA_FILE

        self.cancelled_count = 0
        self._lock = threading.Lock()

        self.logger.info(
            f"Local clip sink initialized (dir: {self.user_dir}, max: {max_clips})"
        )

    # =========================================================================
    # METADATA FILE
    # =========================================================================

    def _load_records(self) -> List[ClipRecord]:
        if not self.metadata_file.exists():
            return []
        try:
            data = json.loads(self.metadata_file.read_text(encoding="utf-8"))
            records = [ClipRecord.from_dict(item) for item in data.get("clips", [])]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise ClipSinkError(f"Corrupted clip metadata {self.metadata_file}: {e}") from e
        return sorted(records, key=lambda r: r.order_index)

    def _save_records(self, records: List[ClipRecord]) -> None:
        payload = {
            "version": METADATA_VERSION,
            "user_id": self.user_id,
            "clips": [r.to_dict() for r in records],
        }
        tmp_file = self.metadata_file.with_suffix(".tmp")
        try:
            tmp_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            # Atomic on POSIX, readers never see a half-written file
            tmp_file.replace(self.metadata_file)
        except OSError as e:
            raise ClipSinkError(f"Could not write clip metadata: {e}") from e

    # =========================================================================
    # SINK INTERFACE
    # =========================================================================

    def on_recorded(self, blob: bytes, duration_seconds: int) -> ClipRecord:
        """
        Write the clip file and append its metadata record.

        Raises:
            ClipLimitReachedError: User already has max_clips clips
            ClipSinkError: Empty clip or write failure
        """
        if not blob:
            raise ClipSinkError("Refusing to store an empty clip")

        with self._lock:
            records = self._load_records()
            if len(records) >= self.max_clips:
                raise ClipLimitReachedError(
                    f"User {self.user_id} already has {len(records)} clips "
                    f"(max {self.max_clips})"
                )

            now = datetime.now()
            order_index = len(records)
            extension = sniff_extension(blob)
            video_path = self.user_dir / generate_clip_filename(order_index, extension, now)

            try:
                self.user_dir.mkdir(parents=True, exist_ok=True)
                video_path.write_bytes(blob)
            except OSError as e:
                raise ClipSinkError(f"Could not write clip {video_path}: {e}") from e

            record = ClipRecord(
                id=uuid4().hex,
                user_id=self.user_id,
                video_path=str(video_path),
                duration=int(round(duration_seconds)),
                order_index=order_index,
                created_at=now.isoformat(),
            )
            try:
                self._save_records(records + [record])
            except ClipSinkError:
                video_path.unlink(missing_ok=True)
                raise

        self.logger.info(
            f"Clip stored: {video_path.name} "
            f"({record.duration}s, {len(blob) / (1024 * 1024):.2f} MB)"
        )
        return record

    def on_cancelled(self) -> None:
        self.cancelled_count += 1
        self.logger.info("Recording cancelled, nothing stored")

    def list_clips(self) -> List[ClipRecord]:
        with self._lock:
            return self._load_records()

    def remaining_slots(self) -> int:
        return max(0, self.max_clips - len(self.list_clips()))

    # =========================================================================
    # CLIP MANAGEMENT
    # =========================================================================

    def get_clip(self, clip_id: str) -> Optional[ClipRecord]:
        for record in self.list_clips():
            if record.id == clip_id:
                return record
        return None

    def delete_clip(self, clip_id: str) -> bool:
        """
        Remove a clip file and its record, then re-number the rest.

        Remaining clips keep their relative order and get contiguous
        order_index values starting at 0.

        Returns:
            True if deleted, False if no such clip
        """
        with self._lock:
            records = self._load_records()
            target = next((r for r in records if r.id == clip_id), None)
            if target is None:
                self.logger.warning(f"Clip not found: {clip_id}")
                return False

            remaining = [r for r in records if r.id != clip_id]
            for index, record in enumerate(remaining):
                record.order_index = index
            self._save_records(remaining)

            Path(target.video_path).unlink(missing_ok=True)

        self.logger.info(f"Clip deleted: {Path(target.video_path).name}")
        return True
