"""
引擎运行期状态与可调参数
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from ...core.config import settings


@dataclass
class EngineRuntimeState:
    """单次运行的可变状态；start 时创建，stop 后丢弃，只由工作线程修改"""
    current_scene_id: Optional[str] = None
    previous_scene_id: Optional[str] = None
    variables: Dict[str, int] = field(default_factory=dict)
    # 单调时钟毫秒；None 表示没有进行中的预测跳转
    last_transition_time: Optional[float] = None
    transition_stuck_count: int = 0
    lost_frame_count: int = 0
    # (场景 id, 区域 id)：触发最近一次预测跳转的动作，卡住时用于重试
    last_transition_action: Optional[Tuple[str, str]] = None
    transition_pending: bool = False

    def begin_transition(self, from_id: str, to_id: str, region_id: str, now_ms: float) -> None:
        self.previous_scene_id = from_id
        self.current_scene_id = to_id
        self.last_transition_time = now_ms
        self.transition_stuck_count = 0
        self.last_transition_action = (from_id, region_id)
        self.transition_pending = True

    def end_transition(self) -> None:
        self.transition_pending = False
        self.transition_stuck_count = 0


@dataclass(frozen=True)
class EngineTuning:
    warmup_ms: int = 1000
    loop_interval_ms: int = 500
    idle_interval_ms: int = 1000
    transition_grace_ms: int = 3000
    transition_check_interval_ms: int = 500
    stuck_retry_every: int = 6
    stuck_max_checks: int = 20
    lost_frame_limit: int = 20
    capture_backoff_ms: int = 1000
    error_backoff_ms: int = 1000
    relaunch_backoff_ms: int = 3000
    worker_join_timeout_sec: float = 1.0

    @classmethod
    def from_settings(cls) -> "EngineTuning":
        return cls(
            warmup_ms=settings.engine_warmup_ms,
            loop_interval_ms=settings.engine_loop_interval_ms,
            idle_interval_ms=settings.engine_idle_interval_ms,
            transition_grace_ms=settings.transition_grace_ms,
            transition_check_interval_ms=settings.transition_check_interval_ms,
            stuck_retry_every=settings.stuck_retry_every,
            stuck_max_checks=settings.stuck_max_checks,
            lost_frame_limit=settings.lost_frame_limit,
            capture_backoff_ms=settings.capture_backoff_ms,
            error_backoff_ms=settings.error_backoff_ms,
            relaunch_backoff_ms=settings.relaunch_backoff_ms,
            worker_join_timeout_sec=settings.worker_join_timeout_sec,
        )


__all__ = ["EngineRuntimeState", "EngineTuning"]
