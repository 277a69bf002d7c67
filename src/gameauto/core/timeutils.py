"""
时间工具模块 - TIME 调度按配置时区计算当天时刻
"""
from datetime import datetime, time

import pytz

from .config import settings


def local_tz():
    """配置的时区，默认北京时间"""
    return pytz.timezone(settings.timezone)


def now_local() -> datetime:
    """获取配置时区的当前时间"""
    return datetime.now(local_tz())


def parse_clock_time(time_str: str) -> time:
    """解析当天时刻字符串（格式：21:00 或 21:00:30）"""
    parts = time_str.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"时间格式错误: {time_str!r}")
    hour, minute = int(parts[0]), int(parts[1])
    second = int(parts[2]) if len(parts) == 3 else 0
    return time(hour, minute, second)


def is_time_of_day_reached(target: time, now: datetime) -> bool:
    """当天是否已到达指定时刻"""
    return now.time().replace(tzinfo=None) >= target
