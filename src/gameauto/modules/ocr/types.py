from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass
class OcrBox:
    text: str
    confidence: float
    # 四点多边形，已加回 ROI 偏移
    box: List[Tuple[int, int]] = field(default_factory=list)


@dataclass
class OcrResult:
    boxes: List[OcrBox] = field(default_factory=list)

    @property
    def text(self) -> str:
        """按识别顺序拼接，去掉换行"""
        return "".join(b.text for b in self.boxes).replace("\n", "").strip()
