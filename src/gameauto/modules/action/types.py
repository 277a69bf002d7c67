"""
手势描述
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

Point = Tuple[float, float]


@dataclass
class Stroke:
    """一笔触摸轨迹

    path 至少包含一个点；单点表示按住不动（点击 / 长按）。
    will_continue 表示手指不抬起，下一笔从本笔终点继续。
    """
    path: List[Point] = field(default_factory=list)
    start_delay_ms: int = 0
    duration_ms: int = 1
    will_continue: bool = False

    @property
    def start(self) -> Point:
        return self.path[0]

    @property
    def end(self) -> Point:
        return self.path[-1]


__all__ = ["Point", "Stroke"]
