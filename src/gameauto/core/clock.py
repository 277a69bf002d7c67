"""
时钟与休眠

引擎和动作层的所有节奏控制都经过 Clock：
- now_ms(): 单调时钟（毫秒），用于冷却/宽限期计算
- wall(): 配置时区的墙上时间，用于 TIME 调度
- sleep(): 分片休眠，每片检查停止信号，停止请求在一个分片内生效
- smart_sleep(): 基准时长叠加高斯抖动的拟人化休眠

测试中替换为推进虚拟时间的子类即可避免真实等待。
"""
from __future__ import annotations

import random
import threading
import time
from datetime import datetime
from typing import Optional

from .config import settings
from .timeutils import now_local

MIN_SLEEP_MS = 10


class Clock:
    def __init__(self, chunk_ms: Optional[int] = None, rng: Optional[random.Random] = None) -> None:
        self.chunk_ms = max(1, int(chunk_ms or settings.sleep_chunk_ms))
        self.rng = rng or random.Random()

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    def wall(self) -> datetime:
        return now_local()

    def _sleep_chunk(self, ms: float, stop_event: Optional[threading.Event]) -> None:
        if stop_event is not None:
            stop_event.wait(ms / 1000.0)
        else:
            time.sleep(ms / 1000.0)

    def sleep(self, ms: float, stop_event: Optional[threading.Event] = None) -> bool:
        """分片休眠。

        Returns:
            True 表示完整睡完；False 表示被停止信号打断
        """
        remaining = float(ms)
        while remaining > 0:
            if stop_event is not None and stop_event.is_set():
                return False
            chunk = min(remaining, float(self.chunk_ms))
            self._sleep_chunk(chunk, stop_event)
            remaining -= chunk
        return not (stop_event is not None and stop_event.is_set())

    def jitter(self, base_ms: float, variance_ms: Optional[float] = None) -> float:
        """base ± N(0, variance/3)，下限 10ms"""
        variance = base_ms * 0.2 if variance_ms is None else float(variance_ms)
        offset = self.rng.gauss(0.0, variance / 3.0) if variance > 0 else 0.0
        return max(float(MIN_SLEEP_MS), base_ms + offset)

    def smart_sleep(
        self,
        base_ms: float,
        variance_ms: Optional[float] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> bool:
        return self.sleep(self.jitter(base_ms, variance_ms), stop_event)


__all__ = ["Clock", "MIN_SLEEP_MS"]
