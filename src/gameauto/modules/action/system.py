"""
动作系统：把区域动作转换为拟人化手势并下发到设备

坐标计算：区域百分比矩形 → 智能对齐 → 高斯取点
- CLICK: 每次点击按住 100-200ms；repeat > 1 时每次之间 smart_sleep(repeatDelay)，并做 ±2.5px 微移
- LONG_PRESS: 按住 params.duration（默认 1000ms）
- SWIPE: 行程 300-400px，二次贝塞尔曲线，可切分为三段连续手势
- BACK_KEY: 设备返回键
WAIT / LAUNCH_APP / CHECK_EXIT 不产生手势，由引擎处理。
"""
from __future__ import annotations

import random
from typing import Callable, List, Optional

from ...core.clock import Clock
from ...core.config import settings
from ...core.constants import KEY_BACK, NON_GESTURE_ACTIONS, ActionType
from ...core.logger import logger
from ..scene.layout import project_rect
from ..scene.models import ActionConfig, Region, Resolution
from .humanize import curved_swipe, gaussian_point, swipe_end
from .types import Point, Stroke

CLICK_HOLD_RANGE_MS = (100, 200)
LONG_PRESS_DEFAULT_MS = 1000
SWIPE_DISTANCE_RANGE = (300.0, 400.0)
SWIPE_DURATION_RANGE_MS = (300, 500)
REPEAT_JITTER_PX = 2.5


class ActionSystem:
    def __init__(
        self,
        device,
        *,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        status: Optional[Callable[[str], None]] = None,
        segmented: Optional[bool] = None,
        stop_event=None,
    ) -> None:
        self.device = device
        self.clock = clock or Clock()
        self.rng = rng or random.Random()
        self.status = status
        self.segmented = settings.swipe_segmented if segmented is None else segmented
        self.stop_event = stop_event
        self._log = logger.bind(module="ActionSystem")

    def calculate_target_point(self, region: Region, resolution: Optional[Resolution] = None) -> Point:
        screen_w, screen_h = self.device.screen_size()
        left, top, width, height = project_rect(region.rect, screen_w, screen_h, resolution)
        return gaussian_point(left, top, width, height, screen_w, screen_h, self.rng)

    def perform_action(
        self,
        action: ActionConfig,
        region: Region,
        resolution: Optional[Resolution] = None,
    ) -> bool:
        """执行动作；手势下发失败只记录日志，返回 False"""
        label = region.display_name
        try:
            if self.status is not None:
                self.status(f"▶ 执行: {label}")

            if action.type in NON_GESTURE_ACTIONS:
                self._log.info("[动作: {}] {} 不产生手势，跳过", label, action.type.value)
                return True

            if action.type == ActionType.BACK_KEY:
                ok = bool(self.device.press_key(KEY_BACK))
                self._log.info("[动作: {}] 返回键", label)
                return ok

            point = self.calculate_target_point(region, resolution)
            if action.type == ActionType.CLICK:
                return self._click(action, point, label)
            if action.type == ActionType.LONG_PRESS:
                duration = action.param_int("duration", LONG_PRESS_DEFAULT_MS)
                self._log.info("[动作: {}] 长按 {}ms 于 ({}, {})", label, duration, int(point[0]), int(point[1]))
                return self._dispatch([Stroke(path=[point], duration_ms=duration)])
            if action.type == ActionType.SWIPE:
                return self._swipe(action, point, label)
        except Exception as e:
            self._log.error("[动作: {}] 执行失败: {}", label, e)
            return False

        self._log.warning("[动作: {}] 未知动作类型: {}", label, action.type)
        return False

    def _click(self, action: ActionConfig, point: Point, label: str) -> bool:
        repeat = max(1, action.param_int("repeat", 1))
        repeat_delay = action.param_int("repeatDelay", 100)
        screen_w, screen_h = self.device.screen_size()
        ok = True
        for i in range(repeat):
            x, y = point
            if i > 0:
                x = min(max(x + self.rng.uniform(-REPEAT_JITTER_PX, REPEAT_JITTER_PX), 0.0), screen_w - 1.0)
                y = min(max(y + self.rng.uniform(-REPEAT_JITTER_PX, REPEAT_JITTER_PX), 0.0), screen_h - 1.0)
            hold = self.rng.randint(*CLICK_HOLD_RANGE_MS)
            ok = self._dispatch([Stroke(path=[(x, y)], duration_ms=hold)]) and ok
            self._log.info(
                "[动作: {}] 点击 ({}/{}) 于 ({}, {}) 用时:{}ms",
                label, i + 1, repeat, int(x), int(y), hold,
            )
            if i < repeat - 1:
                if not self.clock.smart_sleep(repeat_delay, stop_event=self.stop_event):
                    break
        return ok

    def _swipe(self, action: ActionConfig, start: Point, label: str) -> bool:
        screen_w, screen_h = self.device.screen_size()
        direction = action.direction
        distance = self.rng.uniform(*SWIPE_DISTANCE_RANGE)
        duration = action.param_int("duration", 0) or self.rng.randint(*SWIPE_DURATION_RANGE_MS)
        end = swipe_end(start, direction, distance, screen_w, screen_h)
        _, strokes = curved_swipe(start, end, duration, segmented=self.segmented, rng=self.rng)
        self._log.info(
            "[动作: {}] 滑动 {} ({}ms, {} 段)",
            label, direction.value, duration, len(strokes),
        )
        return self._dispatch(strokes)

    def _dispatch(self, strokes: List[Stroke]) -> bool:
        ok = bool(self.device.dispatch_gesture(strokes))
        if not ok:
            self._log.warning("手势下发失败")
        return ok


__all__ = ["ActionSystem"]
