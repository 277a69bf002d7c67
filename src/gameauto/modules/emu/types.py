"""
宿主设备接口：引擎只通过这些方法与设备交互
"""
from __future__ import annotations

from typing import List, Optional, Protocol, Tuple, runtime_checkable

import numpy as np

from ..action.types import Stroke


@runtime_checkable
class HostDevice(Protocol):
    def capture_screen(self) -> Optional[np.ndarray]:
        """BGR 截图；失败返回 None"""
        ...

    def screen_size(self) -> Tuple[int, int]:
        ...

    def dispatch_gesture(self, strokes: List[Stroke]) -> bool:
        ...

    def foreground_app(self) -> Optional[str]:
        """前台应用包名；无法获取时返回 None"""
        ...

    def launch_app(self, package: str) -> bool:
        ...

    def press_key(self, name: str) -> bool:
        """name: back / home / recent"""
        ...


__all__ = ["HostDevice"]
