"""
脚本数据模型

场景图脚本在加载时一次性解析、校验为以下模型，运行期间只读：

ScriptGraph
 └─ SceneNode（场景）
     ├─ Anchor（识别锚点：image / color / text / ai）
     └─ Region（候选动作：动作 + 调度 + 条件 + 触发 + 副作用 + 跳转目标）

坐标均为百分比（0-100）；节点声明 resolution 时按该分辨率做智能对齐。
编辑器导出的节点可将字段放在 data 子对象内，解析时会展开。
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from ...core.constants import (
    DEFAULT_PRIORITY,
    ActionType,
    MatchType,
    ScheduleMode,
    SideEffectType,
    SwipeDirection,
)
from ...core.timeutils import parse_clock_time


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


def _upper(v: Any) -> Any:
    return v.strip().upper() if isinstance(v, str) else v


class Resolution(_Model):
    """脚本录制时的参考分辨率"""
    w: float = Field(gt=0, validation_alias=AliasChoices("w", "width"))
    h: float = Field(gt=0, validation_alias=AliasChoices("h", "height"))


class Anchor(_Model):
    """场景识别锚点"""
    id: str = ""
    label: str = ""
    match_type: MatchType = Field(default=MatchType.IMAGE, alias="matchType")
    x: Optional[float] = None
    y: Optional[float] = None
    w: float = 0.0
    h: float = 0.0
    template: str = ""
    target_color: str = Field(default="", alias="targetColor")
    target_text: str = Field(default="", alias="targetText")
    target_prompt: str = Field(default="", alias="targetPrompt")
    variable_name: str = Field(default="", alias="variableName")
    threshold: Optional[float] = Field(default=None, ge=0, le=1)
    # 颜色采样方式：center 中心像素 / mean 平均色
    sample: str = "center"

    @field_validator("match_type", mode="before")
    @classmethod
    def _lower_match_type(cls, v: Any) -> Any:
        if v is None or v == "":
            return MatchType.IMAGE
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("sample")
    @classmethod
    def _check_sample(cls, v: str) -> str:
        v = (v or "center").lower()
        if v not in ("center", "mean"):
            raise ValueError(f"未知颜色采样方式: {v}")
        return v

    @property
    def rect(self) -> tuple[float, float, float, float]:
        return (self.x or 0.0, self.y or 0.0, self.w, self.h)

    @property
    def has_position(self) -> bool:
        return self.x is not None and self.y is not None and self.x >= 0 and self.y >= 0


# 动作参数中须为非负整数的字段
_INT_PARAMS = ("duration", "repeat", "repeatDelay")


class ActionConfig(_Model):
    type: ActionType = ActionType.CLICK
    params: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, v: Any) -> Any:
        return ActionType.CLICK if v in (None, "") else _upper(v)

    @model_validator(mode="after")
    def _check_params(self) -> "ActionConfig":
        for name in _INT_PARAMS:
            value = self.params.get(name)
            if value is None or value == "":
                continue
            try:
                number = int(value)
            except (TypeError, ValueError):
                raise ValueError(f"动作参数 {name} 不是整数: {value!r}") from None
            if number < 0:
                raise ValueError(f"动作参数 {name} 不能为负: {value!r}")
        direction = self.params.get("direction")
        if direction:
            try:
                SwipeDirection(_upper(direction))
            except ValueError:
                raise ValueError(f"未知滑动方向: {direction!r}") from None
        return self

    def param_int(self, name: str, default: int) -> int:
        value = self.params.get(name)
        if value is None or value == "":
            return default
        return int(value)

    @property
    def direction(self) -> SwipeDirection:
        return SwipeDirection(_upper(self.params.get("direction") or "UP"))


class Schedule(_Model):
    mode: ScheduleMode = ScheduleMode.NONE
    # INTERVAL：秒
    interval: float = Field(default=0.0, ge=0)
    # COUNT：最大执行次数
    max_times: int = Field(default=0, ge=0, alias="maxTimes")
    # TIME："HH:MM"
    time: Optional[str] = None
    priority: int = DEFAULT_PRIORITY

    @field_validator("mode", mode="before")
    @classmethod
    def _upper_mode(cls, v: Any) -> Any:
        return ScheduleMode.NONE if v in (None, "") else _upper(v)

    @field_validator("time")
    @classmethod
    def _check_time(cls, v: Optional[str]) -> Optional[str]:
        if v:
            parse_clock_time(v)
        return v or None

    @model_validator(mode="after")
    def _check_mode_params(self) -> "Schedule":
        if self.mode == ScheduleMode.TIME and not self.time:
            raise ValueError("TIME 调度需要 time 字段")
        return self


class Condition(_Model):
    """变量条件：变量值 > 0 时区域才可执行"""
    variable: str

    @model_validator(mode="before")
    @classmethod
    def _from_name(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"variable": data}
        return data


class SideEffect(_Model):
    type: SideEffectType = SideEffectType.DECREMENT
    variable: str
    value: int = 1

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, v: Any) -> Any:
        return _upper(v)


class Region(_Model):
    """场景内的候选动作区域"""
    id: str
    label: str = ""
    enabled: bool = True
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0
    action: ActionConfig = Field(default_factory=ActionConfig)
    schedule: Schedule = Field(default_factory=Schedule)
    condition: Optional[Condition] = None
    # 额外触发条件（任一满足即可）
    perception: List[Anchor] = Field(default_factory=list)
    side_effect: Optional[SideEffect] = Field(default=None, alias="sideEffect")
    target: str = ""
    wait_before: int = Field(default=0, ge=0)
    wait_after: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        # 单个触发条件写成对象
        if isinstance(data.get("perception"), dict):
            data["perception"] = [data["perception"]]
        if data.get("perception") is None:
            data.pop("perception", None)
        # 区域级 priority 归入调度
        if "priority" in data:
            schedule = dict(data.get("schedule") or {})
            schedule.setdefault("priority", data.pop("priority"))
            data["schedule"] = schedule
        if data.get("condition") in ("", None):
            data.pop("condition", None)
        if data.get("target") is None:
            data["target"] = ""
        return data

    @property
    def priority(self) -> int:
        return self.schedule.priority

    @property
    def rect(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.w, self.h)

    @property
    def display_name(self) -> str:
        return self.label or self.id


class SceneNode(_Model):
    """可识别的游戏画面"""
    id: str
    label: str = ""
    is_root: bool = Field(default=False, alias="isRoot")
    is_global: bool = Field(default=False, alias="isGlobal")
    anchors: List[Anchor] = Field(default_factory=list)
    min_matches: Optional[int] = Field(default=None, alias="minMatches")
    regions: List[Region] = Field(default_factory=list)
    resolution: Optional[Resolution] = None
    parent_node: Optional[str] = Field(default=None, alias="parentNode")

    @model_validator(mode="before")
    @classmethod
    def _flatten_data(cls, data: Any) -> Any:
        """编辑器格式：字段放在 data 子对象中；顶层字段优先。"""
        if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
            return data
        merged = dict(data["data"])
        merged.update({k: v for k, v in data.items() if k != "data"})
        if merged.get("resolution") in ("", None):
            merged.pop("resolution", None)
        return merged

    @property
    def required_matches(self) -> int:
        """命中锚点数达到该值即认为场景激活；未设置或 <=0 时需要全部命中"""
        if self.min_matches is None or self.min_matches <= 0:
            return len(self.anchors)
        return self.min_matches

    @property
    def display_name(self) -> str:
        return self.label or self.id

    def neighbor_ids(self) -> List[str]:
        """通过区域跳转可达的场景（去重、保持声明顺序、不含自身）"""
        seen: List[str] = []
        for region in self.regions:
            if region.target and region.target != self.id and region.target not in seen:
                seen.append(region.target)
        return seen


class ScriptGraph(_Model):
    """编译后的场景图脚本"""
    nodes: List[SceneNode]
    variables: Dict[str, int] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("variables", mode="before")
    @classmethod
    def _coerce_variables(cls, v: Any) -> Any:
        if v is None:
            return {}
        return v

    @model_validator(mode="after")
    def _check_ids(self) -> "ScriptGraph":
        ids = [n.id for n in self.nodes]
        dupes = sorted({i for i in ids if ids.count(i) > 1})
        if dupes:
            raise ValueError(f"场景 id 重复: {dupes}")
        return self

    def node(self, node_id: Optional[str]) -> Optional[SceneNode]:
        if not node_id:
            return None
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    @property
    def root_node(self) -> Optional[SceneNode]:
        """标记为根的场景；没有标记时取第一个场景"""
        for n in self.nodes:
            if n.is_root:
                return n
        return self.nodes[0] if self.nodes else None

    @property
    def global_nodes(self) -> List[SceneNode]:
        return [n for n in self.nodes if n.is_global]

    @property
    def name(self) -> str:
        return str(self.metadata.get("project_name") or self.metadata.get("name") or "Unknown")

    @property
    def package_name(self) -> Optional[str]:
        value = self.metadata.get("packageName") or self.metadata.get("package")
        return str(value) if value else None


__all__ = [
    "Resolution",
    "Anchor",
    "ActionConfig",
    "Schedule",
    "Condition",
    "SideEffect",
    "Region",
    "SceneNode",
    "ScriptGraph",
]
