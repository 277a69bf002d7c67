"""
文字锚点使用的 PaddleOCR 引擎

首次识别时才加载模型；模型目录取 settings.ocr_model_dir，不联网下载。
predict() 不可重入，识别调用需持有 infer_lock。
"""
from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Optional, Tuple

from ...core.config import settings
from ...core.logger import logger

_log = logger.bind(module="OCR")

_engine: Optional[Any] = None
_init_lock = threading.Lock()
infer_lock = threading.Lock()


def _prepare_model_env() -> None:
    model_dir = str(Path(settings.ocr_model_dir).resolve())
    os.environ.setdefault("PADDLEX_HOME", model_dir)
    os.environ.setdefault("PPOCR_HOME", model_dir)
    os.environ.setdefault("PADDLE_PDX_DISABLE_MODEL_SOURCE_CHECK", "True")


def get_ocr_engine():
    """PaddleOCR 单例（双检锁）"""
    global _engine
    if _engine is not None:
        return _engine
    with _init_lock:
        if _engine is None:
            _prepare_model_env()
            from paddleocr import PaddleOCR

            _log.info("加载 PaddleOCR 模型 (lang={}, dir={})", settings.paddle_ocr_lang, settings.ocr_model_dir)
            _engine = PaddleOCR(
                lang=settings.paddle_ocr_lang,
                use_textline_orientation=False,
                use_doc_orientation_classify=False,
                use_doc_unwarping=False,
                device="cpu",
            )
            _log.info("PaddleOCR 就绪")
    return _engine


def set_ocr_engine(engine: Optional[Any]) -> None:
    """替换（或以 None 清除）当前引擎"""
    global _engine
    with _init_lock:
        _engine = engine


def acquire_ocr() -> Tuple[Any, threading.Lock]:
    return get_ocr_engine(), infer_lock


__all__ = ["get_ocr_engine", "set_ocr_engine", "acquire_ocr", "infer_lock"]
