import os

# 测试期间不写日志文件
os.environ.setdefault("LOG_FILE_ENABLED", "false")

import random
import time

import numpy as np
import pytest

from gameauto.core.clock import Clock


class FakeClock(Clock):
    """虚拟时间：sleep 只推进计数，不真正等待"""

    def __init__(self, start_ms: float = 0.0, wall=None):
        super().__init__(chunk_ms=200, rng=random.Random(0))
        self.t = float(start_ms)
        self.wall_time = wall
        self.slept = []

    def now_ms(self) -> float:
        return self.t

    def wall(self):
        return self.wall_time if self.wall_time is not None else super().wall()

    def advance(self, ms: float) -> None:
        self.t += ms

    def sleep(self, ms, stop_event=None):
        self.slept.append(ms)
        return super().sleep(ms, stop_event)

    def _sleep_chunk(self, ms, stop_event):
        self.t += ms
        # 让出 CPU，避免工作线程空转
        time.sleep(0.001)


class FakeDevice:
    def __init__(self, size=(1280, 720)):
        self.size = size
        self.screen = np.zeros((size[1], size[0], 3), dtype=np.uint8)
        self.capture_error = None
        self.foreground = None
        self.gestures = []
        self.launched = []
        self.keys = []
        self.dispatch_ok = True

    def capture_screen(self):
        if self.capture_error is not None:
            raise self.capture_error
        return self.screen

    def screen_size(self):
        return self.size

    def dispatch_gesture(self, strokes):
        self.gestures.append(list(strokes))
        return self.dispatch_ok

    def foreground_app(self):
        return self.foreground

    def launch_app(self, package):
        self.launched.append(package)
        return True

    def press_key(self, name):
        self.keys.append(name)
        return True


class StubPerception:
    """按场景 id 决定是否"看得见"；无锚点场景永远不可见"""

    def __init__(self):
        self.visible = set()
        self.failing_triggers = set()
        self.cleared = 0
        self.calls = 0

    def is_state_active(self, screen, node, variables, scene_name=None, *, verbose=True):
        self.calls += 1
        return bool(node.anchors) and node.id in self.visible

    def any_trigger_holds(self, screen, triggers, variables, node, scene_name=None):
        return not any(t.id in self.failing_triggers for t in triggers)

    def clear_cache(self):
        self.cleared += 1


@pytest.fixture()
def fake_clock():
    return FakeClock()


@pytest.fixture()
def fake_device():
    return FakeDevice()


@pytest.fixture()
def stub_perception():
    return StubPerception()


@pytest.fixture()
def make_engine(fake_device, fake_clock, stub_perception):
    from gameauto.modules.action.system import ActionSystem
    from gameauto.modules.scene.engine import SceneGraphEngine
    from gameauto.modules.scene.types import EngineTuning

    notices = []

    def _make(script, origin_app=None, load=True, **tuning):
        actions = ActionSystem(fake_device, clock=fake_clock, rng=random.Random(7))
        engine = SceneGraphEngine(
            fake_device,
            perception=stub_perception,
            actions=actions,
            clock=fake_clock,
            tuning=EngineTuning(**tuning),
            notifier=notices.append,
        )
        engine.notices = notices
        if load:
            engine.load(script, origin_app=origin_app)
        return engine

    return _make
