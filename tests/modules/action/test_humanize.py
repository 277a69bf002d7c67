import math
import random

import pytest

from gameauto.core.constants import SwipeDirection
from gameauto.modules.action.humanize import (
    bezier_path,
    bezier_point,
    control_point,
    curved_swipe,
    gaussian_point,
    segment_strokes,
    swipe_end,
)


def test_gaussian_points_stay_inside_region_and_cluster_at_center():
    rng = random.Random(42)
    left, top, width, height = 100.0, 200.0, 120.0, 60.0
    xs, ys = [], []
    for _ in range(10000):
        x, y = gaussian_point(left, top, width, height, 1280, 720, rng)
        assert left <= x <= left + width
        assert top <= y <= top + height
        xs.append(x)
        ys.append(y)

    cx, cy = left + width / 2, top + height / 2
    assert sum(xs) / len(xs) == pytest.approx(cx, abs=1.0)
    assert sum(ys) / len(ys) == pytest.approx(cy, abs=1.0)
    # 偏移上限为尺寸的 45%
    assert max(abs(x - cx) for x in xs) <= width * 0.45 + 1e-9
    # 大多数点落在中心 1σ 附近
    near = sum(1 for x in xs if abs(x - cx) <= width / 6)
    assert near / len(xs) > 0.6


def test_gaussian_point_clamped_to_screen():
    rng = random.Random(1)
    for _ in range(500):
        x, y = gaussian_point(1270, 710, 40, 40, 1280, 720, rng)
        assert 0 <= x <= 1279
        assert 0 <= y <= 719


def test_gaussian_point_on_degenerate_region():
    x, y = gaussian_point(50, 50, 0, 0, 1280, 720, random.Random(3))
    assert (x, y) == (50, 50)


@pytest.mark.parametrize(
    "direction, expected",
    [
        (SwipeDirection.UP, (500, 300)),
        (SwipeDirection.DOWN, (500, 700)),
        (SwipeDirection.LEFT, (300, 500)),
        (SwipeDirection.RIGHT, (700, 500)),
    ],
)
def test_swipe_end(direction, expected):
    assert swipe_end((500, 500), direction, 200, 1280, 1280) == expected


def test_swipe_end_clamped():
    assert swipe_end((100, 100), SwipeDirection.UP, 300, 1280, 720) == (100, 0)
    assert swipe_end((1200, 100), SwipeDirection.RIGHT, 300, 1280, 720) == (1279, 100)


def test_control_point_offset_is_perpendicular():
    rng = random.Random(5)
    start, end = (0.0, 0.0), (100.0, 0.0)
    for _ in range(200):
        cx, cy = control_point(start, end, rng)
        assert cx == pytest.approx(50.0)
        assert 10.0 - 1e-9 <= abs(cy) <= 30.0 + 1e-9


def test_control_point_for_zero_length_swipe():
    assert control_point((5, 5), (5, 5), random.Random(0)) == (5.0, 5.0)


def test_bezier_path_endpoints():
    start, ctrl, end = (0.0, 0.0), (50.0, 40.0), (100.0, 0.0)
    path = bezier_path(start, ctrl, end, steps=10)
    assert len(path) == 11
    assert path[0] == start
    assert path[-1] == end
    assert bezier_point(start, ctrl, end, 0.5) == pytest.approx((50.0, 20.0))


def test_segment_strokes_form_one_continuous_gesture():
    start, ctrl, end = (0.0, 0.0), (50.0, 40.0), (100.0, 0.0)
    strokes = segment_strokes(start, ctrl, end, 400)

    assert [s.duration_ms for s in strokes] == [120, 160, 120]
    assert [s.will_continue for s in strokes] == [True, True, False]
    assert strokes[0].start == start
    assert strokes[-1].end == end
    for a, b in zip(strokes, strokes[1:]):
        assert a.end == b.start
    assert strokes[0].end == pytest.approx(bezier_point(start, ctrl, end, 0.2))
    assert strokes[1].end == pytest.approx(bezier_point(start, ctrl, end, 0.8))


def test_curved_swipe_single_stroke_mode():
    ctrl, strokes = curved_swipe((0, 0), (0, 300), 350, segmented=False, rng=random.Random(2))
    assert len(strokes) == 1
    assert strokes[0].duration_ms == 350
    assert len(strokes[0].path) == 21
    # 控制点偏离直线
    assert abs(ctrl[0]) >= 30 - 1e-9
    assert not math.isclose(strokes[0].path[10][0], 0.0)
