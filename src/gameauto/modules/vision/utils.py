"""
Vision utilities: image loading/decoding, cropping and pixel helpers.
"""
from __future__ import annotations

import base64
import os
from typing import Optional, Tuple, Union

import cv2  # type: ignore
import httpx
import numpy as np


ImageLike = Union[str, bytes, np.ndarray]

_IMAGE_PATH_CACHE: dict[str, np.ndarray] = {}


def load_image(img: ImageLike) -> np.ndarray:
    """Load an image into a BGR numpy array.

    - str: treated as a file path and loaded via cv2.imread
    - bytes: decoded via cv2.imdecode
    - np.ndarray: returned as-is (assumed BGR, BGRA or single-channel)
    """
    if isinstance(img, np.ndarray):
        return img
    if isinstance(img, (bytes, bytearray)):
        arr = np.frombuffer(img, dtype=np.uint8)
        mat = cv2.imdecode(arr, cv2.IMREAD_COLOR)
        if mat is None:
            raise ValueError("Failed to decode image bytes")
        return mat
    if isinstance(img, str):
        if not os.path.isfile(img):
            raise FileNotFoundError(f"Image file not found: {img}")
        if img in _IMAGE_PATH_CACHE:
            return _IMAGE_PATH_CACHE[img]
        mat = cv2.imread(img, cv2.IMREAD_COLOR)
        if mat is None:
            raise ValueError(f"Failed to load image from path: {img}")
        _IMAGE_PATH_CACHE[img] = mat
        return mat
    raise TypeError(f"Unsupported image type: {type(img)}")


def decode_image_bytes(data: bytes) -> np.ndarray:
    """Decode encoded image bytes keeping an alpha channel if present."""
    arr = np.frombuffer(data, dtype=np.uint8)
    mat = cv2.imdecode(arr, cv2.IMREAD_UNCHANGED)
    if mat is None:
        raise ValueError("Failed to decode image bytes")
    return mat


def decode_template_source(source: str, *, timeout: float = 10.0) -> np.ndarray:
    """Decode a template given as base64, a data URL, or an http(s) URL.

    Alpha is preserved so that transparent templates can act as match masks.
    """
    text = source.strip()
    if text.startswith("http://") or text.startswith("https://"):
        resp = httpx.get(text, timeout=timeout, follow_redirects=True)
        resp.raise_for_status()
        return decode_image_bytes(resp.content)
    # "data:image/png;base64,...."
    if "," in text:
        text = text.split(",", 1)[1]
    return decode_image_bytes(base64.b64decode(text))


def to_bgr(img: np.ndarray) -> np.ndarray:
    """Normalize gray/BGRA images to 3-channel BGR (no-op for BGR)."""
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
    return img


def to_gray(img: np.ndarray) -> np.ndarray:
    """Convert BGR image to grayscale (no-op if already single-channel)."""
    if img.ndim == 2:
        return img
    return cv2.cvtColor(to_bgr(img), cv2.COLOR_BGR2GRAY)


def percent_rect_to_pixels(
    img: np.ndarray,
    x: float,
    y: float,
    w: float,
    h: float,
) -> Optional[Tuple[int, int, int, int]]:
    """Convert a percentage rectangle (0-100) into a clamped pixel ROI.

    Returns None for empty rectangles or rectangles entirely off-image.
    """
    if w <= 0 or h <= 0:
        return None
    img_h, img_w = img.shape[:2]
    px = int(x / 100.0 * img_w)
    py = int(y / 100.0 * img_h)
    pw = int(w / 100.0 * img_w)
    ph = int(h / 100.0 * img_h)

    safe_x = min(max(px, 0), img_w - 1)
    safe_y = min(max(py, 0), img_h - 1)
    safe_w = min(pw, img_w - safe_x)
    safe_h = min(ph, img_h - safe_y)
    if safe_w <= 0 or safe_h <= 0:
        return None
    return (safe_x, safe_y, safe_w, safe_h)


def crop_percent(img: np.ndarray, x: float, y: float, w: float, h: float) -> Optional[np.ndarray]:
    """Crop a percentage rectangle out of img (None when empty)."""
    roi = percent_rect_to_pixels(img, x, y, w, h)
    if roi is None:
        return None
    rx, ry, rw, rh = roi
    return img[ry : ry + rh, rx : rx + rw]


def encode_jpeg_base64(img: np.ndarray, quality: int = 70) -> str:
    """JPEG-encode an image and return base64 text without line breaks."""
    ok, buf = cv2.imencode(".jpg", to_bgr(img), [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise ValueError("Failed to encode image as JPEG")
    return base64.b64encode(buf.tobytes()).decode("ascii")


def pixel_at(img: ImageLike, x: int, y: int) -> Tuple[int, int, int]:
    """Return pixel color at (x, y) as BGR tuple.

    Raises IndexError if out of bounds.
    """
    mat = load_image(img)
    h, w = mat.shape[:2]
    if not (0 <= x < w and 0 <= y < h):
        raise IndexError(f"Pixel ({x},{y}) is out of bounds for image {w}x{h}")
    if mat.ndim == 2:
        v = int(mat[y, x])
        return (v, v, v)
    b, g, r = mat[y, x][:3]
    return int(b), int(g), int(r)


__all__ = [
    "ImageLike",
    "load_image",
    "decode_image_bytes",
    "decode_template_source",
    "to_bgr",
    "to_gray",
    "percent_rect_to_pixels",
    "crop_percent",
    "encode_jpeg_base64",
    "pixel_at",
]
