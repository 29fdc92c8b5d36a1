"""
SnapshotRenderer tests: PNG output, point placement and caps.

Usage:
    pytest test_renderer.py
"""

import cv2
import numpy as np
import pytest

from mcpi_engine import (
    ClassifiedSet,
    Region,
    RenderError,
    Sample,
    SnapshotRenderer,
)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

RED_BGR = (0, 0, 255)
BLUE_BGR = (255, 0, 0)


def make_sets(inner_points, outer_points):
    inner = ClassifiedSet(Region.INNER)
    outer = ClassifiedSet(Region.OUTER)
    for x, y in inner_points:
        inner.append(Sample(x, y))
    for x, y in outer_points:
        outer.append(Sample(x, y))
    return inner, outer


def pixel_of(renderer, x, y):
    left, top, right, bottom = renderer.plot_box
    return (
        int(round(left + x * (right - left))),
        int(round(bottom - y * (bottom - top))),
    )


def test_render_produces_decodable_png():
    renderer = SnapshotRenderer(canvas_size=300)
    inner, outer = make_sets([(0.0, 0.0), (0.5, 0.5)], [(2.0, 2.0)])

    snapshot = renderer.render(3, inner, outer, cap=1_000_000)

    assert snapshot.image.startswith(PNG_SIGNATURE)
    assert snapshot.image_format == "png"
    assert snapshot.n == 3
    assert snapshot.inner_count == 2
    assert snapshot.outer_count == 1
    assert snapshot.pi_estimate == pytest.approx(8 / 3)

    image = cv2.imdecode(np.frombuffer(snapshot.image, dtype=np.uint8), cv2.IMREAD_COLOR)
    assert image.shape == (300, 300, 3)


def test_points_are_drawn_in_region_colors():
    renderer = SnapshotRenderer(canvas_size=400, point_radius=1)
    inner, outer = make_sets([(0.33, 0.27)], [(0.93, 0.87)])

    frame = renderer.draw(2, inner, outer, cap=10)

    px, py = pixel_of(renderer, 0.33, 0.27)
    assert tuple(frame[py, px]) == RED_BGR
    px, py = pixel_of(renderer, 0.93, 0.87)
    assert tuple(frame[py, px]) == BLUE_BGR


def test_cap_limits_drawn_points_not_counts():
    renderer = SnapshotRenderer(canvas_size=400)
    inner, outer = make_sets([(0.21, 0.33), (0.43, 0.17)], [])

    frame = renderer.draw(2, inner, outer, cap=1)
    snapshot = renderer.render(2, inner, outer, cap=1)

    px, py = pixel_of(renderer, 0.21, 0.33)
    assert tuple(frame[py, px]) == RED_BGR
    px, py = pixel_of(renderer, 0.43, 0.17)
    assert tuple(frame[py, px]) != RED_BGR

    assert snapshot.inner_count == 2
    assert snapshot.pi_estimate == pytest.approx(4.0)


def test_points_outside_unit_square_are_not_drawn():
    renderer = SnapshotRenderer(canvas_size=300)
    empty_inner, empty_outer = make_sets([], [])
    inner, outer = make_sets([(-0.2, -0.3)], [(2.0, 2.0), (float("nan"), 0.5)])

    baseline = renderer.draw(3, empty_inner, empty_outer, cap=10)
    frame = renderer.draw(3, inner, outer, cap=10)

    # Titles differ (pi depends on the counts); the data area must not
    left, top, right, bottom = renderer.plot_box
    plot_area = (slice(top + 1, bottom), slice(left + 1, right))
    assert np.array_equal(baseline[plot_area], frame[plot_area])


def test_empty_state_renders():
    renderer = SnapshotRenderer(canvas_size=200)
    inner, outer = make_sets([], [])

    snapshot = renderer.render(0, inner, outer, cap=10)

    assert snapshot.n == 0
    assert snapshot.pi_estimate is None
    assert snapshot.image.startswith(PNG_SIGNATURE)


def test_encode_failure_raises_render_error():
    with pytest.raises(RenderError):
        SnapshotRenderer.encode(np.zeros((0, 0, 3), dtype=np.uint8))


def test_invalid_renderer_configuration():
    with pytest.raises(ValueError):
        SnapshotRenderer(canvas_size=50)
    with pytest.raises(ValueError):
        SnapshotRenderer(point_radius=-1)
