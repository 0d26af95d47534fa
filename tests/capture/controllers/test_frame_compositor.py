"""
Frame Compositor Tests

Tests for FrameCompositor showing:
- Immediate first draw and fixed-rate drawing
- Horizontal mirroring of every frame
- Stop semantics (no draws after stop, output ended)

To run:
    pytest tests/capture/controllers/test_frame_compositor.py -v
"""

import numpy as np
import pytest

from capture.constants import FrameTransform
from capture.controllers.frame_compositor import FrameCompositor
from capture.implementations.mock_media_device import make_synthetic_frame
from capture.models.media_stream import VideoTrack

# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def source_track():
    track = VideoTrack(label="test-camera")
    track.push(make_synthetic_frame(0, 36, 64))
    return track


@pytest.fixture
def mirror_compositor(source_track, scheduler):
    compositor = FrameCompositor(source_track, FrameTransform.HORIZONTAL_MIRROR, scheduler)
    yield compositor
    compositor.stop()


# =============================================================================
# DRAWING TESTS
# =============================================================================


@pytest.mark.unit
def test_first_frame_drawn_on_start(mirror_compositor):
    """Test output has a frame before the first tick."""
    output = mirror_compositor.start()

    assert mirror_compositor.is_active
    assert mirror_compositor.frames_drawn == 1
    assert output.latest_frame() is not None


@pytest.mark.unit
def test_draws_at_fixed_rate(mirror_compositor, scheduler):
    """Test 30 draws per second after the first."""
    mirror_compositor.start()

    scheduler.advance(1.0)

    assert mirror_compositor.frames_drawn == 31


@pytest.mark.unit
def test_output_is_mirrored(mirror_compositor, source_track):
    """Test every pixel row is reversed."""
    output = mirror_compositor.start()

    source = source_track.latest_frame()
    composited = output.latest_frame()

    assert composited.shape == source.shape
    assert np.array_equal(composited, source[:, ::-1])


@pytest.mark.unit
def test_identity_passes_frames_through(source_track, scheduler):
    compositor = FrameCompositor(source_track, FrameTransform.IDENTITY, scheduler)
    output = compositor.start()

    assert output.latest_frame() is source_track.latest_frame()
    compositor.stop()


@pytest.mark.unit
def test_redraws_latest_source_frame(mirror_compositor, source_track, scheduler):
    """Test the compositor follows the source as it changes."""
    output = mirror_compositor.start()

    source_track.push(make_synthetic_frame(42, 36, 64))
    scheduler.advance(1.0 / 30)

    assert int(output.latest_frame()[0, 0, 1]) == 42


@pytest.mark.unit
def test_empty_source_draws_nothing(scheduler):
    """Test nothing is pushed until the source has a frame."""
    compositor = FrameCompositor(VideoTrack(), FrameTransform.HORIZONTAL_MIRROR, scheduler)
    output = compositor.start()

    scheduler.advance(0.5)

    assert compositor.frames_drawn == 0
    assert output.latest_frame() is None
    compositor.stop()


# =============================================================================
# STOP TESTS
# =============================================================================


@pytest.mark.unit
def test_stop_ends_output(mirror_compositor, scheduler):
    """Test no draws happen after stop."""
    output = mirror_compositor.start()
    scheduler.advance(0.5)
    drawn = mirror_compositor.frames_drawn

    mirror_compositor.stop()
    scheduler.advance(1.0)

    assert mirror_compositor.frames_drawn == drawn
    assert not mirror_compositor.is_active
    assert not output.is_live
    assert scheduler.active_tasks("FrameCompositor") == []


@pytest.mark.unit
def test_stop_is_idempotent(mirror_compositor):
    mirror_compositor.start()

    mirror_compositor.stop()
    mirror_compositor.stop()

    assert not mirror_compositor.is_active


@pytest.mark.unit
def test_cannot_restart(mirror_compositor):
    """Test the output is a one-shot sequence."""
    mirror_compositor.start()
    mirror_compositor.stop()

    with pytest.raises(RuntimeError):
        mirror_compositor.start()


@pytest.mark.unit
def test_invalid_fps(source_track, scheduler):
    with pytest.raises(ValueError):
        FrameCompositor(source_track, FrameTransform.IDENTITY, scheduler, fps=0)


@pytest.mark.unit
def test_transform_failure_sets_error(source_track, scheduler, monkeypatch):
    """Test a frame that cannot be transformed stops compositing."""

    def broken_transform(frame, transform):
        raise ValueError("bad frame")

    monkeypatch.setattr(
        "capture.controllers.frame_compositor.apply_transform",
        broken_transform,
    )
    compositor = FrameCompositor(source_track, FrameTransform.HORIZONTAL_MIRROR, scheduler)

    compositor.start()

    assert compositor.error == "Compositing failed: bad frame"
    assert not compositor.is_active
    assert scheduler.active_tasks("FrameCompositor") == []
    compositor.stop()
