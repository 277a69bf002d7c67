"""
智能对齐（坐标重投影）

脚本以 resolution 分辨率录制，百分比坐标直接按比例缩放会在长宽比不同的设备上偏移。
这里按坐标所处位置决定对齐方式，每个轴独立：
- 百分比 < 33：靠左/靠上，按距左/上边的距离 × scale
- 百分比 > 66：靠右/靠下，按距右/下边的距离 × scale
- 其余：居中，按距中心的距离 × scale
scale 统一取 设备宽 / 录制宽。
"""
from __future__ import annotations

from typing import Optional, Tuple

from .models import Resolution

LOW_EDGE = 33.0
HIGH_EDGE = 66.0


def expected_scale(screen_w: float, resolution: Optional[Resolution]) -> Optional[float]:
    if resolution is None or resolution.w <= 0:
        return None
    return screen_w / resolution.w


def align_axis(percent: float, src_extent: float, dev_extent: float, scale: float) -> float:
    """把单个轴上的百分比坐标投影到设备像素"""
    src = percent / 100.0 * src_extent
    if percent < LOW_EDGE:
        return src * scale
    if percent > HIGH_EDGE:
        return dev_extent - (src_extent - src) * scale
    return dev_extent / 2.0 + (src - src_extent / 2.0) * scale


def project_point(
    x_percent: float,
    y_percent: float,
    screen_w: float,
    screen_h: float,
    resolution: Optional[Resolution],
) -> Tuple[float, float]:
    """百分比坐标 → 设备像素；无分辨率信息时按屏幕百分比换算"""
    scale = expected_scale(screen_w, resolution)
    if scale is None:
        return (x_percent / 100.0 * screen_w, y_percent / 100.0 * screen_h)
    return (
        align_axis(x_percent, resolution.w, screen_w, scale),
        align_axis(y_percent, resolution.h, screen_h, scale),
    )


def project_rect(
    rect: Tuple[float, float, float, float],
    screen_w: float,
    screen_h: float,
    resolution: Optional[Resolution],
) -> Tuple[float, float, float, float]:
    """百分比矩形 → (left, top, width, height) 设备像素

    对齐方式由矩形左上角所在位置决定，尺寸按 scale 缩放。
    """
    x, y, w, h = rect
    left, top = project_point(x, y, screen_w, screen_h, resolution)
    scale = expected_scale(screen_w, resolution)
    if scale is None:
        return (left, top, w / 100.0 * screen_w, h / 100.0 * screen_h)
    return (left, top, w / 100.0 * resolution.w * scale, h / 100.0 * resolution.h * scale)


__all__ = ["expected_scale", "align_axis", "project_point", "project_rect"]
