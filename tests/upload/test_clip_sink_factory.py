"""
Clip Sink Factory and Mock Tests

Tests cover:
1. Factory creates correct implementations
2. Mock sink records what it is handed
3. Container sniffing and file naming
"""

from datetime import datetime

import pytest

from upload.factory import ClipSinkFactory, create_clip_sink
from upload.implementations.local_clip_sink import LocalClipSink
from upload.implementations.mock_clip_sink import MockClipSink
from upload.interfaces.clip_sink_interface import ClipLimitReachedError
from upload.utils.clip_utils import generate_clip_filename, sniff_extension

# =============================================================================
# FACTORY TESTS
# =============================================================================


class TestClipSinkFactory:
    """Test factory creates correct implementations"""

    def test_factory_creates_mock(self):
        sink = ClipSinkFactory.create_sink(mode="mock", user_id="alice")

        assert isinstance(sink, MockClipSink)
        assert sink.user_id == "alice"

    def test_factory_creates_local(self, tmp_path):
        sink = ClipSinkFactory.create_sink(base_path=tmp_path, user_id="alice")

        assert isinstance(sink, LocalClipSink)
        assert sink.user_dir == tmp_path / "alice"

    def test_convenience_function_with_mock(self):
        sink = create_clip_sink(force_mock=True)

        assert isinstance(sink, MockClipSink)


# =============================================================================
# MOCK SINK TESTS
# =============================================================================


class TestMockClipSink:
    """Test mock sink implementation"""

    def test_records_clips(self):
        sink = MockClipSink()

        record = sink.on_recorded(b"\x1a\x45\xdf\xa3data", 20)

        assert sink.get_recorded_count() == 1
        assert sink.recorded[0] == (b"\x1a\x45\xdf\xa3data", 20)
        assert record.order_index == 0
        assert record.video_path.endswith(".webm")

    def test_enforces_limit(self):
        sink = MockClipSink(max_clips=1)
        sink.on_recorded(b"clip", 20)

        with pytest.raises(ClipLimitReachedError):
            sink.on_recorded(b"clip", 20)

        assert sink.remaining_slots() == 0

    def test_reset(self):
        sink = MockClipSink()
        sink.on_recorded(b"clip", 20)
        sink.on_cancelled()

        sink.reset()

        assert sink.get_recorded_count() == 0
        assert sink.cancelled_count == 0
        assert sink.list_clips() == []


# =============================================================================
# CLIP UTILITY TESTS
# =============================================================================


class TestClipUtils:
    """Test container sniffing and file naming"""

    @pytest.mark.parametrize(
        "blob,extension",
        [
            (b"\x1a\x45\xdf\xa3\x9f\x42\x86\x81", "webm"),
            (b"\x00\x00\x00\x20ftypisom", "mp4"),
            (b"\x00\x00\x00\x18ftypmp42", "mp4"),
            (b"garbage", "webm"),
            (b"", "webm"),
        ],
    )
    def test_sniff_extension(self, blob, extension):
        assert sniff_extension(blob) == extension

    def test_generate_clip_filename(self):
        now = datetime.fromtimestamp(1760781234)

        name = generate_clip_filename(2, "webm", now)

        assert name == "video_2_1760781234000.webm"
