"""
Color-based detection utilities.

Color anchors compare a sampled RGB value of a screen rectangle against a hex
target using Euclidean distance in RGB space.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .utils import ImageLike, load_image, percent_rect_to_pixels, pixel_at

DEFAULT_COLOR_TOLERANCE = 50.0

RGB = Tuple[int, int, int]


@dataclass
class ColorCheckResult:
    """颜色检测结果"""
    ok: bool
    actual_rgb: Optional[RGB] = None
    expected_rgb: Optional[RGB] = None
    distance: float = float("inf")


def parse_hex_color(text: str) -> RGB:
    """解析 #RRGGBB / #AARRGGBB / RRGGBB / #RGB，返回 (R, G, B)。"""
    s = text.strip().lstrip("#")
    if len(s) == 3:
        s = "".join(c * 2 for c in s)
    if len(s) == 8:
        # Android 风格 AARRGGBB，忽略 alpha
        s = s[2:]
    if len(s) != 6:
        raise ValueError(f"无效颜色: {text!r}")
    return (int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16))


def color_distance(a: RGB, b: RGB) -> float:
    return math.sqrt(sum((int(x) - int(y)) ** 2 for x, y in zip(a, b)))


def sample_rect_color(
    image: ImageLike,
    rect: Tuple[float, float, float, float],
    *,
    mode: str = "center",
) -> Optional[RGB]:
    """采样百分比矩形的颜色，返回 (R, G, B)。

    Args:
        image: 截图（BGR）
        rect: (x, y, w, h) 百分比
        mode: "center" 取中心像素；"mean" 取矩形平均色
    """
    img = load_image(image)
    roi = percent_rect_to_pixels(img, *rect)
    if roi is None:
        return None
    rx, ry, rw, rh = roi
    if mode == "mean":
        patch = img[ry : ry + rh, rx : rx + rw]
        if patch.ndim == 2:
            v = int(round(float(patch.mean())))
            return (v, v, v)
        b, g, r = np.asarray(patch[:, :, :3], dtype=np.float64).reshape(-1, 3).mean(axis=0)
        return (int(round(r)), int(round(g)), int(round(b)))
    cx, cy = rx + rw // 2, ry + rh // 2
    b, g, r = pixel_at(img, cx, cy)
    return (r, g, b)


def check_rect_color(
    image: ImageLike,
    rect: Tuple[float, float, float, float],
    target_hex: str,
    *,
    tolerance: float = DEFAULT_COLOR_TOLERANCE,
    mode: str = "center",
) -> ColorCheckResult:
    """矩形采样色与目标色的距离小于 tolerance 即视为匹配。"""
    expected = parse_hex_color(target_hex)
    actual = sample_rect_color(image, rect, mode=mode)
    if actual is None:
        return ColorCheckResult(ok=False, expected_rgb=expected)
    dist = color_distance(actual, expected)
    return ColorCheckResult(ok=dist < tolerance, actual_rgb=actual, expected_rgb=expected, distance=dist)


__all__ = [
    "DEFAULT_COLOR_TOLERANCE",
    "ColorCheckResult",
    "parse_hex_color",
    "color_distance",
    "sample_rect_color",
    "check_rect_color",
]
