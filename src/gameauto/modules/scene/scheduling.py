"""
区域执行记录与调度门控
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterator, Optional

from ...core.constants import ScheduleMode
from ...core.timeutils import is_time_of_day_reached, parse_clock_time
from .models import Schedule


@dataclass
class RunRecord:
    last_run_time: float  # 单调时钟毫秒
    run_count: int = 0


class ExecutionHistory:
    """按区域 id 记录最近执行时间与执行次数；只在内存中，引擎重启即清空"""

    def __init__(self) -> None:
        self._records: Dict[str, RunRecord] = {}

    def get(self, region_id: str) -> Optional[RunRecord]:
        return self._records.get(region_id)

    def __getitem__(self, region_id: str) -> RunRecord:
        return self._records[region_id]

    def __contains__(self, region_id: object) -> bool:
        return region_id in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def record(self, region_id: str, now_ms: float) -> RunRecord:
        rec = self._records.get(region_id)
        if rec is None:
            rec = RunRecord(last_run_time=now_ms, run_count=0)
            self._records[region_id] = rec
        rec.last_run_time = now_ms
        rec.run_count += 1
        return rec

    def run_count(self, region_id: str) -> int:
        rec = self._records.get(region_id)
        return rec.run_count if rec else 0

    def clear(self) -> None:
        self._records.clear()


def is_schedule_ready(
    schedule: Schedule,
    record: Optional[RunRecord],
    now_ms: float,
    wall_now: datetime,
) -> bool:
    """调度是否允许执行

    - INTERVAL：距上次执行不足 interval 秒 → 不可执行
    - COUNT：执行次数已达 maxTimes → 不可执行
    - TIME：当天尚未到达 time → 不可执行
    """
    mode = schedule.mode
    if mode == ScheduleMode.INTERVAL:
        if record is None:
            return True
        return now_ms - record.last_run_time >= schedule.interval * 1000.0
    if mode == ScheduleMode.COUNT:
        if schedule.max_times <= 0:
            return True
        return (record.run_count if record else 0) < schedule.max_times
    if mode == ScheduleMode.TIME:
        return is_time_of_day_reached(parse_clock_time(schedule.time or "00:00"), wall_now)
    return True


__all__ = ["RunRecord", "ExecutionHistory", "is_schedule_ready"]
