"""
Local Clip Sink Tests

Tests cover:
1. Clips are written with the expected name and metadata
2. The per-user clip limit is enforced
3. Deleting a clip keeps order_index contiguous
4. Bad input and corrupted metadata are reported, not ignored
"""

import json
import re
from pathlib import Path

import pytest

from upload.implementations.local_clip_sink import LocalClipSink
from upload.interfaces.clip_sink_interface import (
    ClipLimitReachedError,
    ClipRecord,
    ClipSinkError,
)

WEBM_BLOB = b"\x1a\x45\xdf\xa3" + b"\x00" * 256
MP4_BLOB = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 256

# =============================================================================
# TEST FIXTURES
# =============================================================================


@pytest.fixture
def sink(tmp_path):
    """Sink for user "alice" under a temporary directory"""
    return LocalClipSink(base_path=tmp_path, user_id="alice", max_clips=5)


# =============================================================================
# STORING CLIPS
# =============================================================================


class TestStoreClip:
    """Test on_recorded writes files and metadata"""

    def test_clip_file_written(self, sink, tmp_path):
        record = sink.on_recorded(WEBM_BLOB, 20)

        path = Path(record.video_path)
        assert path.parent == tmp_path / "alice"
        assert path.read_bytes() == WEBM_BLOB

    def test_file_name_pattern(self, sink):
        record = sink.on_recorded(WEBM_BLOB, 20)

        assert re.fullmatch(r"video_0_\d{13}\.webm", Path(record.video_path).name)

    def test_mp4_clip_gets_mp4_extension(self, sink):
        record = sink.on_recorded(MP4_BLOB, 20)

        assert record.video_path.endswith(".mp4")

    def test_record_fields(self, sink):
        record = sink.on_recorded(WEBM_BLOB, 42)

        assert record.user_id == "alice"
        assert record.duration == 42
        assert record.order_index == 0
        assert record.id
        assert record.created_at

    def test_metadata_file_contents(self, sink):
        record = sink.on_recorded(WEBM_BLOB, 20)

        data = json.loads(sink.metadata_file.read_text())

        assert data["version"] == 1
        assert data["user_id"] == "alice"
        assert data["clips"] == [record.to_dict()]

    def test_order_index_increments(self, sink):
        indexes = [sink.on_recorded(WEBM_BLOB, 20).order_index for _ in range(3)]

        assert indexes == [0, 1, 2]
        assert [c.order_index for c in sink.list_clips()] == [0, 1, 2]

    def test_records_survive_new_instance(self, sink, tmp_path):
        """Clips are read back from disk by a fresh sink"""
        record = sink.on_recorded(WEBM_BLOB, 20)

        reopened = LocalClipSink(base_path=tmp_path, user_id="alice")

        assert reopened.list_clips() == [record]
        assert reopened.get_clip(record.id) == record

    def test_empty_blob_rejected(self, sink):
        with pytest.raises(ClipSinkError):
            sink.on_recorded(b"", 20)

        assert sink.list_clips() == []

    def test_users_are_separated(self, tmp_path):
        alice = LocalClipSink(base_path=tmp_path, user_id="alice")
        bob = LocalClipSink(base_path=tmp_path, user_id="bob")

        alice.on_recorded(WEBM_BLOB, 20)

        assert len(alice.list_clips()) == 1
        assert bob.list_clips() == []


# =============================================================================
# CLIP LIMIT
# =============================================================================


class TestClipLimit:
    """Test the per-user maximum"""

    def test_remaining_slots(self, sink):
        assert sink.remaining_slots() == 5

        sink.on_recorded(WEBM_BLOB, 20)
        sink.on_recorded(WEBM_BLOB, 20)

        assert sink.remaining_slots() == 3

    def test_sixth_clip_refused(self, sink):
        for _ in range(5):
            sink.on_recorded(WEBM_BLOB, 20)

        with pytest.raises(ClipLimitReachedError):
            sink.on_recorded(WEBM_BLOB, 20)

        assert len(sink.list_clips()) == 5
        assert len(list(sink.user_dir.glob("video_*"))) == 5
        assert sink.remaining_slots() == 0

    def test_limit_error_is_a_sink_error(self):
        assert issubclass(ClipLimitReachedError, ClipSinkError)


# =============================================================================
# DELETING CLIPS
# =============================================================================


class TestDeleteClip:
    """Test delete_clip"""

    def test_delete_renumbers_remaining(self, sink):
        records = [sink.on_recorded(WEBM_BLOB, 20 + i) for i in range(3)]

        assert sink.delete_clip(records[1].id) is True

        clips = sink.list_clips()
        assert [c.id for c in clips] == [records[0].id, records[2].id]
        assert [c.order_index for c in clips] == [0, 1]
        assert not Path(records[1].video_path).exists()

    def test_delete_frees_a_slot(self, sink):
        records = [sink.on_recorded(WEBM_BLOB, 20) for _ in range(5)]

        sink.delete_clip(records[0].id)
        record = sink.on_recorded(WEBM_BLOB, 20)

        assert record.order_index == 4

    def test_delete_unknown_clip(self, sink):
        sink.on_recorded(WEBM_BLOB, 20)

        assert sink.delete_clip("no-such-id") is False
        assert len(sink.list_clips()) == 1

    def test_get_unknown_clip(self, sink):
        assert sink.get_clip("no-such-id") is None


# =============================================================================
# ERROR HANDLING
# =============================================================================


class TestErrors:
    """Test invalid input and corrupted state"""

    @pytest.mark.parametrize("user_id", ["", ".", "..", "a/b", "a\\b"])
    def test_invalid_user_id(self, tmp_path, user_id):
        with pytest.raises(ValueError):
            LocalClipSink(base_path=tmp_path, user_id=user_id)

    def test_corrupted_metadata(self, sink):
        sink.user_dir.mkdir(parents=True)
        sink.metadata_file.write_text("{not json")

        with pytest.raises(ClipSinkError):
            sink.list_clips()

    def test_metadata_missing_fields(self, sink):
        sink.user_dir.mkdir(parents=True)
        sink.metadata_file.write_text(json.dumps({"clips": [{"id": "x"}]}))

        with pytest.raises(ClipSinkError):
            sink.list_clips()

    def test_cancel_stores_nothing(self, sink):
        sink.on_cancelled()

        assert sink.cancelled_count == 1
        assert sink.list_clips() == []
        assert not sink.user_dir.exists()


# =============================================================================
# CLIP RECORD
# =============================================================================


class TestClipRecord:
    """Test ClipRecord serialization"""

    def test_from_dict_coerces_numbers(self):
        record = ClipRecord.from_dict(
            {
                "id": "abc",
                "user_id": "alice",
                "video_path": "/clips/video_0_1.webm",
                "duration": "20",
                "order_index": "0",
                "created_at": "2026-01-01T00:00:00",
            }
        )

        assert record.duration == 20
        assert record.order_index == 0
        assert ClipRecord.from_dict(record.to_dict()) == record
