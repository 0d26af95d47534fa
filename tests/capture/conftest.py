"""
Capture Test Configuration and Fixtures

Shared fixtures for capture module tests.

Everything runs on the MockScheduler virtual clock: call
scheduler.advance(seconds) to let time pass. Frames, compositing draws and
timer ticks all happen inside advance(), so a 60-second recording takes
milliseconds.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from capture.constants import CaptureState
from capture.controllers.capture_session import VideoCaptureSession
from capture.implementations.mock_encoder import MockEncoder
from capture.implementations.mock_media_device import MockMediaDevice
from capture.implementations.mock_scheduler import MockScheduler

# Keeps "camera never delivers a frame" tests fast
TEST_METADATA_TIMEOUT = 0.05

# =============================================================================
# COMPONENT FIXTURES
# =============================================================================


@pytest.fixture
def scheduler():
    """
    Provide a MockScheduler starting at t=0.

    Usage:
        def test_timer(scheduler):
            scheduler.advance(1.0)
    """
    sched = MockScheduler()
    yield sched
    sched.cleanup()


@pytest.fixture
def mock_device(scheduler):
    """
    Provide MockMediaDevice emitting 30 fps on the virtual clock.

    Usage:
        def test_camera(mock_device):
            mock_device.simulate_permission_denied()
    """
    device = MockMediaDevice(scheduler=scheduler)
    yield device
    device.cleanup()


@pytest.fixture
def mock_encoder():
    """Provide MockEncoder supporting every preferred format."""
    encoder = MockEncoder()
    yield encoder
    encoder.cleanup()


# =============================================================================
# CAPTURE SESSION FIXTURES
# =============================================================================


@pytest.fixture
def capture_session(mock_device, mock_encoder, scheduler):
    """
    Provide VideoCaptureSession on mock components (15-60 s clips).

    Usage:
        def test_session(capture_session):
            capture_session.start_camera()
    """
    session = VideoCaptureSession(
        media_device=mock_device,
        encoder=mock_encoder,
        scheduler=scheduler,
        min_duration_seconds=15,
        max_duration_seconds=60,
        metadata_timeout=TEST_METADATA_TIMEOUT,
    )
    yield session
    session.cleanup()


@pytest.fixture
def ready_session(capture_session):
    """
    Provide a session with the front camera live (READY).

    Usage:
        def test_record(ready_session, scheduler):
            ready_session.start_recording()
            scheduler.advance(20)
    """
    assert capture_session.start_camera() is True
    assert capture_session.state == CaptureState.READY
    return capture_session


# =============================================================================
# TEMPORARY DIRECTORY FIXTURES
# =============================================================================


@pytest.fixture
def temp_clip_dir():
    """
    Provide temporary directory for stored clips.

    Directory is automatically cleaned up after test.
    """
    temp_dir = Path(tempfile.mkdtemp())

    yield temp_dir

    # Cleanup
    if temp_dir.exists():
        shutil.rmtree(temp_dir)


# =============================================================================
# CALLBACK TRACKING FIXTURES
# =============================================================================


@pytest.fixture
def callback_tracker():
    """
    Provide helper for tracking callback calls.

    Usage:
        def test_callback(capture_session, callback_tracker):
            capture_session.on_recorded = callback_tracker.track
            # ... record a clip ...
            assert callback_tracker.was_called()
    """

    class CallbackTracker:
        def __init__(self):
            self.calls = []

        def track(self, *args, **kwargs):
            """Record a callback invocation"""
            self.calls.append({"args": args, "kwargs": kwargs})

        def was_called(self) -> bool:
            """Check if callback was called"""
            return len(self.calls) > 0

        def get_call_count(self) -> int:
            """Get number of times callback was called"""
            return len(self.calls)

        def get_last_call(self):
            """Get arguments from last call"""
            return self.calls[-1] if self.calls else None

        def get_all_calls(self):
            """Get all calls"""
            return self.calls.copy()

        def reset(self):
            """Clear call history"""
            self.calls.clear()

    return CallbackTracker()


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """
    Configure pytest with custom markers for capture tests.
    """
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "unit_integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
    config.addinivalue_line("markers", "requires_ffmpeg: Tests requiring FFmpeg")
    config.addinivalue_line("markers", "requires_camera: Tests requiring a camera")
