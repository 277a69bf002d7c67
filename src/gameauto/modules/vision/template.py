"""
Template matching utilities.

Features:
- Normalized cross-correlation over a 3-channel color image
- Transparent templates: the alpha channel becomes a match mask
- Multi-scale retry around an expected scale (authoring vs. playback resolution)
- Returns the clickable center of the match in screenshot pixel space
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import cv2  # type: ignore
import numpy as np

from ...core.logger import logger
from .utils import ImageLike, load_image, to_bgr


DEFAULT_THRESHOLD = 0.8

# Standard ladder 0.5, 0.6, ... 1.5
SCALE_LADDER = [round(0.5 + 0.1 * i, 1) for i in range(11)]
# Ladder entries this close to the expected scale are redundant
EXPECTED_SCALE_EXCLUSION = 0.15
MIN_TEMPLATE_SIDE = 10

_log = logger.bind(module="ImageMatcher")


@dataclass
class MatchResult:
    """Best match; (x, y) is the center in screenshot pixels."""
    x: int
    y: int
    score: float
    width: int
    height: int


def candidate_scales(expected_scale: Optional[float] = None) -> List[float]:
    """Scales to try, in order."""
    if expected_scale is None or expected_scale <= 0:
        return sorted(SCALE_LADDER, key=lambda s: (abs(s - 1.0), s))
    scales = [expected_scale, expected_scale * 0.9, expected_scale * 1.1]
    scales += [s for s in SCALE_LADDER if abs(s - expected_scale) > EXPECTED_SCALE_EXCLUSION]
    return scales


def _split_mask(template: np.ndarray):
    """Return (bgr_template, mask or None). Fully opaque alpha is not a mask."""
    if template.ndim == 3 and template.shape[2] == 4:
        alpha = template[:, :, 3]
        bgr = cv2.cvtColor(template, cv2.COLOR_BGRA2BGR)
        if int(alpha.min()) >= 255:
            return bgr, None
        return bgr, alpha
    return to_bgr(template), None


def _match_at_scale(
    screen: np.ndarray,
    template: np.ndarray,
    mask: Optional[np.ndarray],
    scale: float,
) -> Optional[MatchResult]:
    th, tw = template.shape[:2]
    sw, sh = int(round(tw * scale)), int(round(th * scale))
    screen_h, screen_w = screen.shape[:2]
    if sw < MIN_TEMPLATE_SIDE or sh < MIN_TEMPLATE_SIDE:
        return None
    if sw > screen_w or sh > screen_h:
        return None

    if abs(scale - 1.0) < 1e-6:
        tpl, msk = template, mask
    else:
        interp = cv2.INTER_AREA if scale < 1.0 else cv2.INTER_LINEAR
        tpl = cv2.resize(template, (sw, sh), interpolation=interp)
        msk = cv2.resize(mask, (sw, sh), interpolation=cv2.INTER_NEAREST) if mask is not None else None

    if msk is not None:
        # Masked correlation; masked-out pixels do not influence the score
        res = cv2.matchTemplate(screen, tpl, cv2.TM_CCORR_NORMED, mask=msk)
    else:
        res = cv2.matchTemplate(screen, tpl, cv2.TM_CCOEFF_NORMED)
    # Flat regions can yield inf/nan
    res = np.nan_to_num(res, nan=0.0, posinf=0.0, neginf=0.0)
    _, max_val, _, max_loc = cv2.minMaxLoc(res)

    x, y = max_loc
    return MatchResult(
        x=int(x + sw // 2),
        y=int(y + sh // 2),
        score=float(max_val),
        width=sw,
        height=sh,
    )


def find_template(
    image: ImageLike,
    template: ImageLike,
    threshold: float = DEFAULT_THRESHOLD,
    expected_scale: Optional[float] = None,
) -> Optional[MatchResult]:
    """Find template in image across scales.

    Short-circuits on the first scale whose score clears threshold.
    Processing errors are logged and reported as no match.

    Args:
        image: screenshot (path/bytes/np.ndarray)
        template: template (np.ndarray may carry an alpha channel)
        threshold: minimum accepted score (0-1)
        expected_scale: playback/authoring width ratio, if known

    Returns:
        MatchResult or None
    """
    try:
        screen = to_bgr(load_image(image))
        tpl, mask = _split_mask(load_image(template))

        best: Optional[MatchResult] = None
        for scale in candidate_scales(expected_scale):
            result = _match_at_scale(screen, tpl, mask, scale)
            if result is None:
                continue
            if result.score >= threshold:
                _log.debug("match score={:.4f} scale={:.2f} at ({}, {})", result.score, scale, result.x, result.y)
                return result
            if best is None or result.score > best.score:
                best = result

        if best is not None:
            _log.debug("no match, best score={:.4f} < {}", best.score, threshold)
        return None
    except Exception as e:
        _log.error("模板匹配异常: {}", e)
        return None


__all__ = [
    "DEFAULT_THRESHOLD",
    "SCALE_LADDER",
    "MatchResult",
    "candidate_scales",
    "find_template",
]
