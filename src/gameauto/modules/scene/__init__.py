from .layout import align_axis, expected_scale, project_point, project_rect
from .loader import ScriptLoadError, detect_format, load_script_source, parse_document, parse_script
from .models import (
    ActionConfig,
    Anchor,
    Condition,
    Region,
    Resolution,
    SceneNode,
    Schedule,
    ScriptGraph,
    SideEffect,
)
from .perception import PerceptionSystem
from .scheduling import ExecutionHistory, RunRecord, is_schedule_ready
from .types import EngineRuntimeState, EngineTuning

# SceneGraphEngine 依赖动作层，按需从 .engine 导入

__all__ = [
    "ActionConfig",
    "Anchor",
    "Condition",
    "EngineRuntimeState",
    "EngineTuning",
    "ExecutionHistory",
    "PerceptionSystem",
    "Region",
    "Resolution",
    "RunRecord",
    "SceneNode",
    "Schedule",
    "ScriptGraph",
    "ScriptLoadError",
    "SideEffect",
    "align_axis",
    "detect_format",
    "expected_scale",
    "is_schedule_ready",
    "load_script_source",
    "parse_document",
    "parse_script",
    "project_point",
    "project_rect",
]
