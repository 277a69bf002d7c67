"""
常量和枚举定义
"""
from enum import Enum


class MatchType(str, Enum):
    """锚点识别方式"""
    IMAGE = "image"
    COLOR = "color"
    TEXT = "text"
    AI = "ai"


class ActionType(str, Enum):
    """区域动作类型"""
    CLICK = "CLICK"
    LONG_PRESS = "LONG_PRESS"
    SWIPE = "SWIPE"
    WAIT = "WAIT"
    LAUNCH_APP = "LAUNCH_APP"
    BACK_KEY = "BACK_KEY"
    CHECK_EXIT = "CHECK_EXIT"


# 不产生触摸手势的动作
NON_GESTURE_ACTIONS = frozenset({ActionType.WAIT, ActionType.LAUNCH_APP, ActionType.CHECK_EXIT})


class SwipeDirection(str, Enum):
    """滑动方向"""
    UP = "UP"
    DOWN = "DOWN"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


class ScheduleMode(str, Enum):
    """区域调度模式"""
    NONE = "NONE"
    INTERVAL = "INTERVAL"  # 距上次执行不足 interval 秒则跳过
    COUNT = "COUNT"  # 执行次数达到 maxTimes 后跳过
    TIME = "TIME"  # 当天未到指定时刻则跳过


class SideEffectType(str, Enum):
    """动作执行后的变量副作用"""
    DECREMENT = "DECREMENT"
    INCREMENT = "INCREMENT"
    SET = "SET"


class EngineState(str, Enum):
    """引擎状态"""
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


class StepOutcome(str, Enum):
    """单轮循环结果"""
    OFF_TARGET = "off_target"  # 前台应用不是目标应用
    CAPTURE_FAILED = "capture_failed"
    WAITING_TRANSITION = "waiting_transition"
    LOST = "lost"
    IDLE = "idle"  # 当前场景没有可执行区域
    ACTED = "acted"


class ScriptFormat(str, Enum):
    """脚本格式"""
    SCENE_GRAPH = "scene_graph"
    LINEAR = "linear"


# 区域默认优先级（数字越小越优先）
DEFAULT_PRIORITY = 5

# 按键名称
KEY_BACK = "back"
KEY_HOME = "home"
KEY_RECENT = "recent"
