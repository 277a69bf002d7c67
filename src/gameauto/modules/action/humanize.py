"""
拟人化坐标与轨迹

- gaussian_point: 区域内高斯分布取点（中心附近概率最高，偏移限制在区域尺寸 ±45%）
- swipe_end: 按方向计算滑动终点
- bezier_point / bezier_path: 二次贝塞尔曲线，控制点沿垂直方向随机偏移
- segment_strokes: 把曲线切成 30/40/30% 时长的三笔连续手势（加速 / 匀速 / 减速）
"""
from __future__ import annotations

import math
import random
from typing import List, Optional, Tuple

from ...core.constants import SwipeDirection
from .types import Point, Stroke

SIGMA_DIVISOR = 6.0
MAX_OFFSET_RATIO = 0.45
CONTROL_OFFSET_RANGE = (0.10, 0.30)
SEGMENT_RATIOS = (0.3, 0.4, 0.3)
SEGMENT_SAMPLES = (0.2, 0.8)


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def gaussian_point(
    left: float,
    top: float,
    width: float,
    height: float,
    screen_w: int,
    screen_h: int,
    rng: Optional[random.Random] = None,
) -> Point:
    """矩形 (left, top, width, height) 内的高斯随机点，结果限制在屏幕内"""
    rng = rng or random
    cx = left + width / 2.0
    cy = top + height / 2.0
    sigma_x = max(1.0, width / SIGMA_DIVISOR)
    sigma_y = max(1.0, height / SIGMA_DIVISOR)
    max_dx = width * MAX_OFFSET_RATIO
    max_dy = height * MAX_OFFSET_RATIO
    dx = _clamp(rng.gauss(0.0, sigma_x), -max_dx, max_dx)
    dy = _clamp(rng.gauss(0.0, sigma_y), -max_dy, max_dy)
    x = _clamp(cx + dx, 0.0, float(screen_w - 1))
    y = _clamp(cy + dy, 0.0, float(screen_h - 1))
    return (x, y)


def swipe_end(start: Point, direction: SwipeDirection, distance: float, screen_w: int, screen_h: int) -> Point:
    sx, sy = start
    if direction == SwipeDirection.UP:
        ex, ey = sx, sy - distance
    elif direction == SwipeDirection.DOWN:
        ex, ey = sx, sy + distance
    elif direction == SwipeDirection.LEFT:
        ex, ey = sx - distance, sy
    else:
        ex, ey = sx + distance, sy
    return (_clamp(ex, 0.0, float(screen_w - 1)), _clamp(ey, 0.0, float(screen_h - 1)))


def control_point(start: Point, end: Point, rng: Optional[random.Random] = None) -> Point:
    """中点沿垂直于行进方向偏移 10%-30% 行程，偏向随机"""
    rng = rng or random
    sx, sy = start
    ex, ey = end
    dx, dy = ex - sx, ey - sy
    dist = math.hypot(dx, dy)
    mx, my = (sx + ex) / 2.0, (sy + ey) / 2.0
    if dist == 0:
        return (mx, my)
    # 单位法向量
    nx, ny = -dy / dist, dx / dist
    magnitude = dist * rng.uniform(*CONTROL_OFFSET_RANGE) * rng.choice((-1.0, 1.0))
    return (mx + nx * magnitude, my + ny * magnitude)


def bezier_point(start: Point, ctrl: Point, end: Point, t: float) -> Point:
    u = 1.0 - t
    x = u * u * start[0] + 2 * u * t * ctrl[0] + t * t * end[0]
    y = u * u * start[1] + 2 * u * t * ctrl[1] + t * t * end[1]
    return (x, y)


def bezier_path(start: Point, ctrl: Point, end: Point, steps: int = 20) -> List[Point]:
    steps = max(1, steps)
    return [bezier_point(start, ctrl, end, i / steps) for i in range(steps + 1)]


def segment_strokes(start: Point, ctrl: Point, end: Point, duration_ms: int) -> List[Stroke]:
    """三笔连续手势：start→P(0.2)→P(0.8)→end，时长 30/40/30%"""
    p1 = bezier_point(start, ctrl, end, SEGMENT_SAMPLES[0])
    p2 = bezier_point(start, ctrl, end, SEGMENT_SAMPLES[1])
    points = [start, p1, p2, end]
    durations = [max(1, int(duration_ms * r)) for r in SEGMENT_RATIOS]
    strokes: List[Stroke] = []
    for i in range(3):
        strokes.append(
            Stroke(
                path=[points[i], points[i + 1]],
                start_delay_ms=0,
                duration_ms=durations[i],
                will_continue=i < 2,
            )
        )
    return strokes


def curved_swipe(
    start: Point,
    end: Point,
    duration_ms: int,
    *,
    segmented: bool = True,
    rng: Optional[random.Random] = None,
) -> Tuple[Point, List[Stroke]]:
    """生成弯曲滑动手势，返回 (控制点, 笔画列表)"""
    ctrl = control_point(start, end, rng)
    if segmented:
        return ctrl, segment_strokes(start, ctrl, end, duration_ms)
    return ctrl, [Stroke(path=bezier_path(start, ctrl, end), duration_ms=max(1, duration_ms))]


__all__ = [
    "gaussian_point",
    "swipe_end",
    "control_point",
    "bezier_point",
    "bezier_path",
    "segment_strokes",
    "curved_swipe",
]
