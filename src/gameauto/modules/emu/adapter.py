"""
ADB 设备适配器：实现 HostDevice 接口

- capture_screen(): exec-out screencap -p，超时 / 解码失败返回 None
- dispatch_gesture(strokes): 单笔用 input swipe（点击为零位移滑动，按住时长即笔画时长），
  连续笔画（will_continue）与多点曲线用 input motionevent DOWN/MOVE/UP
- foreground_app(): dumpsys window 解析焦点窗口包名
- launch_app(pkg): monkey 启动，失败回退 am start
- press_key(name): back / home / recent
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from ...core.config import settings
from ...core.logger import logger
from ..action.types import Stroke
from ..vision.utils import load_image
from .adb import KEYCODES, Adb, AdbError


@dataclass
class AdapterConfig:
    adb_path: str
    adb_addr: str
    pkg_name: str = ""
    capture_timeout_sec: float = 2.0

    @classmethod
    def from_settings(cls) -> "AdapterConfig":
        return cls(
            adb_path=settings.adb_path,
            adb_addr=settings.adb_addr,
            pkg_name=settings.pkg_name,
            capture_timeout_sec=settings.capture_timeout_sec,
        )


def _chains(strokes: List[Stroke]) -> List[List[Stroke]]:
    """按 will_continue 把笔画分组：同一组内手指不抬起"""
    groups: List[List[Stroke]] = []
    current: List[Stroke] = []
    for stroke in strokes:
        current.append(stroke)
        if not stroke.will_continue:
            groups.append(current)
            current = []
    if current:
        groups.append(current)
    return groups


class AdbDevice:
    def __init__(self, cfg: AdapterConfig, adb: Optional[Adb] = None) -> None:
        self.cfg = cfg
        self.adb = adb or Adb(cfg.adb_path)
        self._size: Optional[Tuple[int, int]] = None
        self._log = logger.bind(module="AdbDevice")

    def connect(self) -> bool:
        try:
            ok = self.adb.connect(self.cfg.adb_addr)
        except AdbError as e:
            self._log.error("ADB 连接失败: {}", e)
            return False
        if not ok:
            self._log.warning("ADB 连接未确认: {}", self.cfg.adb_addr)
        return ok

    # ── 截图 ──

    def capture_screen(self) -> Optional[np.ndarray]:
        try:
            data = self.adb.screencap(self.cfg.adb_addr, timeout=self.cfg.capture_timeout_sec)
        except AdbError as e:
            self._log.warning("截图失败: {}", e)
            return None
        if not data:
            return None
        try:
            image = load_image(data)
        except ValueError as e:
            self._log.warning("截图解码失败: {}", e)
            return None
        if self._size is None:
            h, w = image.shape[:2]
            self._size = (w, h)
        return image

    def screen_size(self) -> Tuple[int, int]:
        if self._size is None:
            size = self.adb.window_size(self.cfg.adb_addr)
            if size is None:
                if self.capture_screen() is None or self._size is None:
                    raise AdbError("无法获取屏幕尺寸")
            else:
                self._size = size
        return self._size

    # ── 手势 ──

    def dispatch_gesture(self, strokes: List[Stroke]) -> bool:
        try:
            for chain in _chains(strokes):
                if len(chain) == 1 and len(chain[0].path) <= 2:
                    self._swipe(chain[0])
                else:
                    self._motion(chain)
        except AdbError as e:
            self._log.error("手势下发失败: {}", e)
            return False
        return True

    def _swipe(self, stroke: Stroke) -> None:
        x1, y1 = stroke.start
        x2, y2 = stroke.end
        self.adb.swipe(
            self.cfg.adb_addr,
            int(round(x1)), int(round(y1)),
            int(round(x2)), int(round(y2)),
            max(1, int(stroke.duration_ms)),
        )

    def _motion(self, chain: List[Stroke]) -> None:
        """整条链一次下发；每笔的时长按路径点均分为 MOVE 之间的停顿"""
        first = chain[0]
        events = [("DOWN", *first.start, first.start_delay_ms)]
        pending = 0
        for idx, stroke in enumerate(chain):
            if idx > 0:
                pending += stroke.start_delay_ms
            moves = stroke.path[1:]
            if not moves:
                # 原地按住的一笔：时长并入下一次移动前的停顿
                pending += stroke.duration_ms
                continue
            n = len(moves)
            for i, p in enumerate(moves, start=1):
                # 累计取整，保证每笔停顿之和等于 duration_ms
                delay = round(stroke.duration_ms * i / n) - round(stroke.duration_ms * (i - 1) / n)
                events.append(("MOVE", *p, delay + pending))
                pending = 0
        events.append(("UP", *chain[-1].end, pending))
        self.adb.motion(
            self.cfg.adb_addr,
            [(action, int(round(x)), int(round(y)), int(delay)) for action, x, y, delay in events],
        )

    # ── 应用 / 按键 ──

    def foreground_app(self) -> Optional[str]:
        try:
            return self.adb.foreground_package(self.cfg.adb_addr)
        except AdbError as e:
            self._log.debug("获取前台应用失败: {}", e)
            return None

    def launch_app(self, package: str) -> bool:
        if not package:
            return False
        try:
            self.adb.start_app_monkey(self.cfg.adb_addr, package)
        except AdbError as e:
            self._log.error("启动应用失败 {}: {}", package, e)
            return False
        self._log.info("已启动应用: {}", package)
        return True

    def press_key(self, name: str) -> bool:
        code = KEYCODES.get(name.lower())
        if code is None:
            self._log.warning("未知按键: {}", name)
            return False
        try:
            self.adb.keyevent(self.cfg.adb_addr, code)
        except AdbError as e:
            self._log.error("按键失败 {}: {}", name, e)
            return False
        return True


__all__ = ["AdapterConfig", "AdbDevice"]
