from .types import OcrBox, OcrResult
from .recognize import ocr, ocr_text
from .engine import get_ocr_engine, set_ocr_engine

__all__ = [
    "OcrBox",
    "OcrResult",
    "ocr",
    "ocr_text",
    "get_ocr_engine",
    "set_ocr_engine",
]
