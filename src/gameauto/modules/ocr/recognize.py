"""
文字识别：截图（或其局部）→ OcrResult / 纯文本
"""
from __future__ import annotations

from typing import List, Optional, Tuple

from ...core.config import settings
from ..vision.utils import ImageLike, load_image, to_bgr
from .engine import acquire_ocr
from .types import OcrBox, OcrResult

Roi = Tuple[int, int, int, int]


def ocr(
    image: ImageLike,
    *,
    roi: Optional[Roi] = None,
    min_confidence: Optional[float] = None,
) -> OcrResult:
    """识别图像中的文字，低于 min_confidence 的行被丢弃

    Args:
        image: 路径 / 编码字节 / BGR 数组
        roi: 像素区域 (x, y, w, h)，结果坐标仍为整图坐标
        min_confidence: 默认取 settings.ocr_min_confidence
    """
    floor = settings.ocr_min_confidence if min_confidence is None else min_confidence
    img = to_bgr(load_image(image))
    dx = dy = 0
    if roi is not None:
        dx, dy, w, h = roi
        img = img[dy : dy + h, dx : dx + w]
    if img.size == 0:
        return OcrResult()

    engine, lock = acquire_ocr()
    with lock:
        pages = engine.predict(img)

    boxes: List[OcrBox] = []
    if pages:
        page = pages[0]
        for text, score, poly in zip(page["rec_texts"], page["rec_scores"], page["rec_polys"]):
            if score < floor:
                continue
            boxes.append(
                OcrBox(
                    text=text,
                    confidence=float(score),
                    box=[(int(p[0]) + dx, int(p[1]) + dy) for p in poly],
                )
            )
    return OcrResult(boxes=boxes)


def ocr_text(image: ImageLike, *, roi: Optional[Roi] = None) -> str:
    return ocr(image, roi=roi).text
