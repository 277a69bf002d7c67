from .humanize import bezier_point, curved_swipe, gaussian_point, segment_strokes, swipe_end
from .system import ActionSystem
from .types import Point, Stroke

__all__ = [
    "ActionSystem",
    "Point",
    "Stroke",
    "bezier_point",
    "curved_swipe",
    "gaussian_point",
    "segment_strokes",
    "swipe_end",
]
