from .template import (
    DEFAULT_THRESHOLD,
    MatchResult,
    candidate_scales,
    find_template,
)
from .utils import (
    ImageLike,
    load_image,
    decode_template_source,
    crop_percent,
    encode_jpeg_base64,
    to_bgr,
    to_gray,
    pixel_at,
)
from .color_detect import ColorCheckResult, check_rect_color, parse_hex_color

__all__ = [
    "DEFAULT_THRESHOLD",
    "MatchResult",
    "candidate_scales",
    "find_template",
    "ImageLike",
    "load_image",
    "decode_template_source",
    "crop_percent",
    "encode_jpeg_base64",
    "to_bgr",
    "to_gray",
    "pixel_at",
    "ColorCheckResult",
    "check_rect_color",
    "parse_hex_color",
]
