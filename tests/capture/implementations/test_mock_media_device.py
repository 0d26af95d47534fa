"""
Mock Media Device and Mock Encoder Tests

Tests for the test doubles themselves, so failures in session tests point
at the session and not at the fakes.

To run:
    pytest tests/capture/implementations/test_mock_media_device.py -v
"""

import json

import numpy as np
import pytest

from capture.constants import ENCODING_FORMAT_PREFERENCES, Facing, find_format
from capture.implementations.mock_encoder import WEBM_MAGIC, MockEncoder
from capture.implementations.mock_media_device import (
    MockMediaDevice,
    frame_index,
    make_synthetic_frame,
)
from capture.interfaces.encoder_interface import EncodingError, RecorderUnavailableError
from capture.interfaces.media_device_interface import (
    DeviceAcquisitionError,
    NoDeviceFoundError,
    PermissionDeniedError,
)

# =============================================================================
# SYNTHETIC FRAME TESTS
# =============================================================================


@pytest.mark.unit
def test_synthetic_frame_shape():
    frame = make_synthetic_frame(3, 36, 64)

    assert frame.shape == (64, 36, 3)
    assert frame.dtype == np.uint8
    assert frame_index(frame) == 3


@pytest.mark.unit
def test_synthetic_frame_is_not_symmetric():
    """Test mirroring a synthetic frame is detectable."""
    frame = make_synthetic_frame(0, 36, 64)

    assert not np.array_equal(frame, frame[:, ::-1])


# =============================================================================
# ACQUIRE / RELEASE TESTS
# =============================================================================


@pytest.mark.unit
def test_acquire_delivers_first_frame(mock_device):
    stream = mock_device.acquire(Facing.FRONT)

    assert stream.is_live
    assert stream.facing == Facing.FRONT
    assert stream.video.dimensions == (36, 64)
    assert stream.audio is not None
    assert mock_device.get_acquisition_count() == 1


@pytest.mark.unit
def test_frames_follow_the_clock(mock_device, scheduler):
    stream = mock_device.acquire(Facing.BACK)

    scheduler.advance(1.0)

    assert stream.video.items_delivered == 31
    assert stream.audio.items_delivered == 31


@pytest.mark.unit
def test_manual_emission_without_scheduler():
    device = MockMediaDevice()
    stream = device.acquire(Facing.FRONT)

    device.emit_frame()
    device.emit_frame()

    assert stream.video.items_delivered == 3
    assert frame_index(stream.video.latest_frame()) == 2
    device.cleanup()


@pytest.mark.unit
def test_camera_cannot_be_held_twice(mock_device):
    """Test a leaked stream makes the next acquire fail."""
    mock_device.acquire(Facing.FRONT)

    with pytest.raises(DeviceAcquisitionError):
        mock_device.acquire(Facing.BACK)


@pytest.mark.unit
def test_release_stops_stream(mock_device, scheduler):
    stream = mock_device.acquire(Facing.FRONT)

    mock_device.release(stream)
    scheduler.advance(1.0)

    assert not stream.is_live
    assert not stream.audio.is_live
    assert stream.video.items_delivered == 1
    assert mock_device.get_active_stream_count() == 0


@pytest.mark.unit
def test_release_is_idempotent(mock_device):
    stream = mock_device.acquire(Facing.FRONT)

    mock_device.release(stream)
    mock_device.release(stream)
    mock_device.release(None)

    assert mock_device.get_release_count() == 1


@pytest.mark.unit
def test_without_audio():
    device = MockMediaDevice(with_audio=False)

    stream = device.acquire(Facing.FRONT)

    assert stream.audio is None
    device.cleanup()


# =============================================================================
# SIMULATED FAILURE TESTS
# =============================================================================


@pytest.mark.unit
@pytest.mark.parametrize(
    "simulate,expected",
    [
        ("simulate_permission_denied", PermissionDeniedError),
        ("simulate_no_device", NoDeviceFoundError),
        ("simulate_acquisition_failure", DeviceAcquisitionError),
    ],
)
def test_simulated_acquire_failures(mock_device, simulate, expected):
    getattr(mock_device, simulate)()

    with pytest.raises(expected):
        mock_device.acquire(Facing.FRONT)

    mock_device.reset_test_config()
    assert mock_device.acquire(Facing.FRONT).is_live


@pytest.mark.unit
def test_no_frames_mode(mock_device, scheduler):
    mock_device.simulate_no_frames()

    stream = mock_device.acquire(Facing.FRONT)
    scheduler.advance(1.0)

    assert stream.video.dimensions is None
    assert stream.video.wait_for_dimensions(0.01) is None


@pytest.mark.unit
def test_device_loss_ends_tracks(mock_device):
    stream = mock_device.acquire(Facing.FRONT)

    mock_device.simulate_device_loss()

    assert not stream.is_live
    # Hardware still held until the owner releases it
    assert mock_device.get_active_stream_count() == 1


# =============================================================================
# MOCK ENCODER TESTS
# =============================================================================


@pytest.mark.unit
def test_mock_encoder_collects_frames(mock_device, scheduler):
    """Test frames pushed while encoding end up in the clip summary."""
    encoder = MockEncoder()
    stream = mock_device.acquire(Facing.BACK)
    fmt = ENCODING_FORMAT_PREFERENCES[0]

    handle = encoder.begin_encoding(stream, fmt, 2_500_000)
    scheduler.advance(1.0)
    blob = encoder.finish_encoding(handle)

    assert blob.startswith(WEBM_MAGIC)
    summary = json.loads(blob[len(WEBM_MAGIC):].decode("utf-8"))
    assert summary["frames"] == 30
    assert summary["audio_blocks"] == 30
    assert summary["mime_type"] == fmt.mime_type
    assert handle.frames_encoded == 30
    assert encoder.get_finished_count() == 1


@pytest.mark.unit
def test_mock_encoder_stops_collecting_after_finish(mock_device, scheduler):
    encoder = MockEncoder()
    stream = mock_device.acquire(Facing.BACK)
    handle = encoder.begin_encoding(stream, ENCODING_FORMAT_PREFERENCES[0], 1000)
    scheduler.advance(0.5)

    encoder.finish_encoding(handle)
    frames = len(handle.frames)
    scheduler.advance(0.5)

    assert len(handle.frames) == frames
    assert encoder.active_handle is None


@pytest.mark.unit
def test_mock_encoder_unsupported_format(mock_device):
    encoder = MockEncoder(supported_mime_types={"video/mp4"})
    stream = mock_device.acquire(Facing.FRONT)

    assert encoder.is_format_supported(find_format("video/mp4"))
    with pytest.raises(RecorderUnavailableError):
        encoder.begin_encoding(stream, find_format("video/webm"), 1000)


@pytest.mark.unit
def test_mock_encoder_single_encoding_at_a_time(mock_device):
    encoder = MockEncoder()
    stream = mock_device.acquire(Facing.FRONT)
    fmt = ENCODING_FORMAT_PREFERENCES[0]
    encoder.begin_encoding(stream, fmt, 1000)

    with pytest.raises(EncodingError):
        encoder.begin_encoding(stream, fmt, 1000)


@pytest.mark.unit
def test_mock_encoder_abort(mock_device):
    encoder = MockEncoder()
    stream = mock_device.acquire(Facing.FRONT)
    handle = encoder.begin_encoding(stream, ENCODING_FORMAT_PREFERENCES[0], 1000)

    encoder.abort_encoding(handle)
    encoder.abort_encoding(handle)

    assert encoder.get_aborted_count() == 1
    assert encoder.active_handle is None
