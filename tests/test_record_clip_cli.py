"""
Clip Recorder CLI Tests

Tests for record_clip.py without opening a window: argument parsing,
key handling, overlay drawing and the start-up checks in main().

To run:
    pytest tests/test_record_clip_cli.py -v
"""

import numpy as np
import pytest

import record_clip
from capture import CaptureState, Facing, VideoCaptureSession
from capture.implementations.mock_encoder import MockEncoder
from capture.implementations.mock_media_device import MockMediaDevice
from capture.implementations.mock_scheduler import MockScheduler
from upload.implementations.local_clip_sink import LocalClipSink

# =============================================================================
# FIXTURES
# =============================================================================


class FakeSession:
    """Records which session methods a key press triggered."""

    def __init__(self, state=CaptureState.READY, can_cancel=True):
        self.state = state
        self.can_cancel = can_cancel
        self.calls = []

    def cancel(self):
        self.calls.append("cancel")
        return self.can_cancel

    def start_recording(self):
        self.calls.append("start_recording")
        self.state = CaptureState.RECORDING
        return True

    def stop_recording(self):
        self.calls.append("stop_recording")
        self.state = CaptureState.COMPLETED

    def switch_camera(self):
        self.calls.append("switch_camera")
        return True

    def retry(self):
        self.calls.append("retry")
        self.state = CaptureState.READY
        return True


@pytest.fixture
def live_session():
    """Real session on mock components, camera started"""
    scheduler = MockScheduler()
    device = MockMediaDevice(scheduler=scheduler)
    session = VideoCaptureSession(
        media_device=device,
        encoder=MockEncoder(),
        scheduler=scheduler,
        min_duration_seconds=15,
        max_duration_seconds=60,
    )
    session.start_camera()
    yield session, scheduler
    session.cleanup()
    device.cleanup()


@pytest.fixture
def quiet_logging(monkeypatch):
    """Keep main() from attaching file handlers during tests"""
    monkeypatch.setattr(record_clip, "setup_logging", lambda level: None)


# =============================================================================
# ARGUMENT TESTS
# =============================================================================


@pytest.mark.unit
def test_parse_args_defaults():
    args = record_clip.parse_args([])

    assert args.mock is False
    assert args.facing == "front"
    assert args.min_duration == 15
    assert args.max_duration == 60


@pytest.mark.unit
def test_parse_args_options(tmp_path):
    args = record_clip.parse_args(
        ["--mock", "--facing", "back", "--user", "alice", "--output", str(tmp_path)]
    )

    assert args.mock is True
    assert args.facing == "back"
    assert args.user == "alice"
    assert args.output == tmp_path


@pytest.mark.unit
def test_parse_args_rejects_unknown_facing():
    with pytest.raises(SystemExit):
        record_clip.parse_args(["--facing", "side"])


@pytest.mark.unit
def test_build_session_mock(tmp_path):
    args = record_clip.parse_args(
        ["--mock", "--facing", "back", "--user", "alice", "--output", str(tmp_path)]
    )

    session, sink = record_clip.build_session(args)
    try:
        assert isinstance(session.media_device, MockMediaDevice)
        assert isinstance(session.encoder, MockEncoder)
        assert session.facing == Facing.BACK
        assert sink.user_dir == tmp_path / "alice"
        assert session.on_cancelled == sink.on_cancelled
    finally:
        session.cleanup()
        session.scheduler.cleanup()


# =============================================================================
# KEY HANDLING TESTS
# =============================================================================


@pytest.mark.unit
def test_space_starts_then_stops():
    session = FakeSession()

    assert record_clip.handle_key(session, record_clip.KEY_SPACE) is True
    assert record_clip.handle_key(session, record_clip.KEY_SPACE) is False

    assert session.calls == ["start_recording", "stop_recording"]


@pytest.mark.unit
@pytest.mark.parametrize("key", [ord("q"), record_clip.KEY_ESC])
def test_quit_cancels(key):
    session = FakeSession()

    assert record_clip.handle_key(session, key) is False
    assert session.calls == ["cancel"]


@pytest.mark.unit
def test_quit_refused_while_recording():
    session = FakeSession(state=CaptureState.RECORDING, can_cancel=False)

    assert record_clip.handle_key(session, ord("q")) is True


@pytest.mark.unit
def test_switch_key():
    session = FakeSession()

    record_clip.handle_key(session, ord("s"))

    assert session.calls == ["switch_camera"]


@pytest.mark.unit
def test_retry_only_after_error():
    ready = FakeSession()
    failed = FakeSession(state=CaptureState.ERROR)

    record_clip.handle_key(ready, ord("r"))
    record_clip.handle_key(failed, ord("r"))

    assert ready.calls == []
    assert failed.calls == ["retry"]


@pytest.mark.unit
def test_space_ignored_while_acquiring():
    session = FakeSession(state=CaptureState.ACQUIRING)

    assert record_clip.handle_key(session, record_clip.KEY_SPACE) is True
    assert session.calls == []


# =============================================================================
# OVERLAY TESTS
# =============================================================================


@pytest.mark.unit
def test_overlay_does_not_touch_preview(live_session):
    session, scheduler = live_session
    frame = session.get_preview_frame()
    original = frame.copy()

    canvas = record_clip.draw_overlay(frame, session)

    assert canvas.shape == frame.shape
    assert np.array_equal(frame, original)
    assert not np.array_equal(canvas, original)


@pytest.mark.unit
def test_overlay_while_recording(live_session):
    session, scheduler = live_session
    session.start_recording()
    scheduler.advance(5.0)

    canvas = record_clip.draw_overlay(session.get_preview_frame(), session)

    assert canvas.shape[:2] == session.get_preview_frame().shape[:2]


@pytest.mark.unit
def test_overlay_on_placeholder():
    session = FakeSession(state=CaptureState.ERROR)
    session.error_message = "No camera found on this device."
    session.warning_message = None
    placeholder = np.zeros((640, 360, 3), dtype=np.uint8)

    canvas = record_clip.draw_overlay(placeholder, session)

    assert canvas.any()
    assert not placeholder.any()


# =============================================================================
# MAIN TESTS
# =============================================================================


@pytest.mark.unit
def test_main_refuses_when_profile_full(tmp_path, quiet_logging, monkeypatch):
    sink = LocalClipSink(base_path=tmp_path, user_id="alice", max_clips=5)
    for _ in range(5):
        sink.on_recorded(b"\x1a\x45\xdf\xa3clip", 20)

    def fail_run(session, sink):
        raise AssertionError("preview loop must not start")

    monkeypatch.setattr(record_clip, "run", fail_run)

    code = record_clip.main(["--mock", "--user", "alice", "--output", str(tmp_path)])

    assert code == 1


@pytest.mark.unit
def test_main_rejects_inconsistent_durations(tmp_path, quiet_logging):
    code = record_clip.main(
        ["--mock", "--output", str(tmp_path), "--min-duration", "30", "--max-duration", "10"]
    )

    assert code == 2


@pytest.mark.unit
def test_main_runs_loop(tmp_path, quiet_logging, monkeypatch):
    seen = []

    def fake_run(session, sink):
        seen.append((session, sink))
        return 0

    monkeypatch.setattr(record_clip, "run", fake_run)

    code = record_clip.main(["--mock", "--user", "bob", "--output", str(tmp_path)])

    assert code == 0
    session, sink = seen[0]
    assert sink.user_id == "bob"
    assert session.state == CaptureState.IDLE
    session.scheduler.cleanup()
