import dataclasses

import pytest

from mandelview.renderer import pixel_to_complex
from mandelview.viewport import InputDeltas, ViewportState, apply_input


def test_zoom_out_then_in_drifts():
    viewport = ViewportState(scale=0.5)
    viewport.apply_zoom(-1.0)
    assert viewport.scale == pytest.approx(0.45)
    viewport.apply_zoom(1.0)
    assert viewport.scale == pytest.approx(0.495)
    assert viewport.scale != 0.5


def test_zero_zoom_is_noop():
    viewport = ViewportState(scale=0.5)
    viewport.apply_zoom(0.0)
    assert viewport.scale == 0.5


def test_zoom_uses_sign_only():
    small = ViewportState(scale=1.0)
    large = ViewportState(scale=1.0)
    small.apply_zoom(0.01)
    large.apply_zoom(12.0)
    assert small.scale == large.scale == pytest.approx(1.1)


def test_zoom_keeps_scale_when_it_would_underflow():
    viewport = ViewportState(scale=1e-320, zoom_out_factor=1e-10)
    viewport.apply_zoom(-1.0)
    assert viewport.scale == 1e-320


def test_zoom_keeps_scale_when_it_would_overflow():
    viewport = ViewportState(scale=1e308, zoom_in_factor=10.0)
    viewport.apply_zoom(1.0)
    assert viewport.scale == 1e308


@pytest.mark.parametrize("scale", [0.5, 3.0, 1e6, 1e-4])
def test_zero_drag_leaves_offset_alone(scale):
    viewport = ViewportState(scale=scale, center_offset=(0.125, -0.75))
    viewport.apply_pan((0.0, 0.0), (512.0, 512.0))
    assert viewport.center_offset == (0.125, -0.75)


def test_pan_distance_shrinks_with_zoom():
    near = ViewportState(scale=2.0)
    far = ViewportState(scale=1.0)
    near.apply_pan((10.0, -4.0), (512.0, 512.0))
    far.apply_pan((10.0, -4.0), (512.0, 512.0))
    assert near.center_offset[0] == pytest.approx(far.center_offset[0] / 2)
    assert near.center_offset[1] == pytest.approx(far.center_offset[1] / 2)
    assert far.center_offset == pytest.approx((-10.0 / 512.0, 4.0 / 512.0))


@pytest.mark.parametrize("scale", [0.5, 7.5, 2500.0])
def test_pan_keeps_content_under_the_cursor(scale):
    width = height = 1024
    viewport = ViewportState(scale=scale, center_offset=(-0.6, 0.1))
    before = pixel_to_complex(300, 700, viewport.snapshot(), width, height)

    viewport.apply_pan((25.0, -40.0), (width / 2, height / 2))
    after = pixel_to_complex(325, 660, viewport.snapshot(), width, height)

    assert after == pytest.approx(before)


def test_reset_restores_default_view():
    viewport = ViewportState(scale=9.0, center_offset=(1.0, 2.0))
    viewport.reset(0.5)
    assert viewport.scale == 0.5
    assert viewport.center_offset == (0.0, 0.0)


def test_snapshot_is_read_only():
    snapshot = ViewportState(scale=2.0, center_offset=(0.5, -0.5)).snapshot()
    assert (snapshot.scale, snapshot.offset_x, snapshot.offset_y) == (2.0, 0.5, -0.5)
    with pytest.raises(dataclasses.FrozenInstanceError):
        snapshot.scale = 1.0


def test_apply_input_without_deltas_reports_no_change():
    viewport = ViewportState()
    assert not apply_input(viewport, InputDeltas(), (512.0, 512.0))
    assert viewport == ViewportState()


def test_apply_input_zooms_once_per_batch_then_pans():
    viewport = ViewportState(scale=1.0)
    deltas = InputDeltas(scroll=3.0, drag=(11.0, 0.0))
    assert apply_input(viewport, deltas, (512.0, 512.0))
    assert viewport.scale == pytest.approx(1.1)
    # Pan is measured at the zoom level just applied
    assert viewport.center_offset[0] == pytest.approx(-11.0 / 512.0 / 1.1)


def test_apply_input_reset_happens_before_other_deltas():
    viewport = ViewportState(scale=40.0, center_offset=(3.0, 3.0))
    apply_input(viewport, InputDeltas(scroll=-1.0, reset=True), (512.0, 512.0), reset_scale=0.5)
    assert viewport.scale == pytest.approx(0.45)
    assert viewport.center_offset == (0.0, 0.0)


def test_quit_alone_is_not_a_view_change():
    assert InputDeltas(quit=True).is_empty


@pytest.mark.parametrize("delta", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_zoom_is_noop(delta):
    viewport = ViewportState(scale=0.5)
    viewport.apply_zoom(delta)
    assert viewport.scale == 0.5


def test_apply_input_reset_returns_to_starting_offset():
    viewport = ViewportState(scale=12.0, center_offset=(4.0, -4.0))
    apply_input(viewport, InputDeltas(reset=True), (512.0, 512.0),
                reset_scale=0.75, reset_offset=(-0.5, 0.25))
    assert viewport.scale == 0.75
    assert viewport.center_offset == (-0.5, 0.25)
