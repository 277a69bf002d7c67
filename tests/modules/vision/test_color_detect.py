import numpy as np
import pytest

from gameauto.modules.vision.color_detect import (
    check_rect_color,
    color_distance,
    parse_hex_color,
    sample_rect_color,
)


def _screen():
    img = np.zeros((100, 200, 3), dtype=np.uint8)
    # 左上角区域纯红（BGR）
    img[0:50, 0:100] = (0, 0, 255)
    return img


@pytest.mark.parametrize(
    "text, expected",
    [
        ("#FF0000", (255, 0, 0)),
        ("00ff00", (0, 255, 0)),
        ("#F00", (255, 0, 0)),
        ("#80112233", (0x11, 0x22, 0x33)),
    ],
)
def test_parse_hex_color(text, expected):
    assert parse_hex_color(text) == expected


def test_parse_hex_color_rejects_garbage():
    with pytest.raises(ValueError):
        parse_hex_color("#12345")


def test_sample_center_returns_rgb():
    assert sample_rect_color(_screen(), (0, 0, 50, 50)) == (255, 0, 0)


def test_sample_mean_mixes_colors():
    # 横跨红色与黑色各一半
    r, g, b = sample_rect_color(_screen(), (0, 0, 100, 50), mode="mean")
    assert (g, b) == (0, 0)
    assert r == pytest.approx(128, abs=1)


def test_check_rect_color_tolerance():
    screen = _screen()
    assert check_rect_color(screen, (0, 0, 50, 50), "#F01010").ok
    far = check_rect_color(screen, (0, 0, 50, 50), "#0000FF")
    assert not far.ok
    assert far.distance == pytest.approx(color_distance((255, 0, 0), (0, 0, 255)))


def test_empty_rect_never_matches():
    assert not check_rect_color(_screen(), (0, 0, 0, 0), "#FF0000").ok
