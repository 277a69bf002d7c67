import random

import pytest

from gameauto.modules.action.system import ActionSystem
from gameauto.modules.scene.models import ActionConfig, Region, Resolution


def _region(action_type="CLICK", params=None, **kw):
    data = {"id": "r", "label": "按钮", "x": 10, "y": 10, "w": 10, "h": 10}
    data.update(kw)
    data["action"] = {"type": action_type, "params": params or {}}
    return Region.model_validate(data)


@pytest.fixture()
def actions(fake_device, fake_clock):
    return ActionSystem(fake_device, clock=fake_clock, rng=random.Random(7))


def test_target_point_inside_projected_region(actions):
    region = _region()
    for _ in range(200):
        x, y = actions.calculate_target_point(region)
        assert 128 <= x <= 256
        assert 72 <= y <= 144


def test_target_point_uses_smart_alignment(fake_device, fake_clock):
    fake_device.size = (2400, 1080)
    actions = ActionSystem(fake_device, clock=fake_clock, rng=random.Random(1))
    region = _region(x=90, y=90, w=5, h=5)
    x, y = actions.calculate_target_point(region, Resolution(w=1280, h=720))
    # 右下角按距右/下边的距离对齐
    assert 2400 - 128 * 1.875 <= x <= 2400 - 64 * 1.875
    assert 1080 - 72 * 1.875 <= y <= 1080 - 36 * 1.875


def test_click_holds_between_100_and_200ms(actions, fake_device):
    region = _region()
    assert actions.perform_action(region.action, region) is True

    assert len(fake_device.gestures) == 1
    (stroke,) = fake_device.gestures[0]
    assert len(stroke.path) == 1
    assert 100 <= stroke.duration_ms <= 200


def test_repeated_click_jitters_and_waits(actions, fake_device, fake_clock):
    region = _region(params={"repeat": 3, "repeatDelay": 300})
    assert actions.perform_action(region.action, region) is True

    points = [g[0].start for g in fake_device.gestures]
    assert len(points) == 3
    for x, y in points[1:]:
        assert abs(x - points[0][0]) <= 2.5
        assert abs(y - points[0][1]) <= 2.5
    assert len(fake_clock.slept) == 2
    assert all(s >= 10 for s in fake_clock.slept)


def test_long_press_duration(actions, fake_device):
    region = _region("LONG_PRESS", {"duration": 1500})
    assert actions.perform_action(region.action, region)
    assert fake_device.gestures[0][0].duration_ms == 1500

    region = _region("LONG_PRESS")
    actions.perform_action(region.action, region)
    assert fake_device.gestures[1][0].duration_ms == 1000


def test_segmented_swipe_up(actions, fake_device):
    region = _region("SWIPE", {"direction": "UP"}, y=80)
    assert actions.perform_action(region.action, region)

    strokes = fake_device.gestures[0]
    assert len(strokes) == 3
    assert [s.will_continue for s in strokes] == [True, True, False]
    start, end = strokes[0].start, strokes[-1].end
    assert end[0] == pytest.approx(start[0])
    assert 300 <= start[1] - end[1] <= 400
    assert 295 <= sum(s.duration_ms for s in strokes) <= 500


def test_single_stroke_swipe_with_duration(fake_device, fake_clock):
    actions = ActionSystem(fake_device, clock=fake_clock, rng=random.Random(3), segmented=False)
    region = _region("SWIPE", {"direction": "RIGHT", "duration": 450})
    assert actions.perform_action(region.action, region)

    (stroke,) = fake_device.gestures[0]
    assert stroke.duration_ms == 450
    assert 300 <= stroke.end[0] - stroke.start[0] <= 400


def test_back_key(actions, fake_device):
    region = _region("BACK_KEY")
    assert actions.perform_action(region.action, region)
    assert fake_device.keys == ["back"]
    assert fake_device.gestures == []


@pytest.mark.parametrize("action_type", ["WAIT", "LAUNCH_APP", "CHECK_EXIT"])
def test_non_gesture_actions(actions, fake_device, action_type):
    region = _region(action_type)
    assert actions.perform_action(region.action, region) is True
    assert fake_device.gestures == []


def test_dispatch_failure_returns_false(actions, fake_device):
    fake_device.dispatch_ok = False
    region = _region()
    assert actions.perform_action(region.action, region) is False


def test_device_error_returns_false(actions, fake_device):
    def broken():
        raise RuntimeError("device gone")

    fake_device.screen_size = broken
    region = _region()
    assert actions.perform_action(region.action, region) is False


def test_status_callback(fake_device, fake_clock):
    messages = []
    actions = ActionSystem(fake_device, clock=fake_clock, rng=random.Random(0), status=messages.append)
    region = _region()
    actions.perform_action(ActionConfig(type="WAIT"), region)
    assert messages == ["▶ 执行: 按钮"]


def test_each_repeated_tap_draws_its_own_hold(actions, fake_device):
    region = _region(params={"repeat": 8, "repeatDelay": 0})
    assert actions.perform_action(region.action, region) is True

    holds = [g[0].duration_ms for g in fake_device.gestures]
    assert len(holds) == 8
    assert all(100 <= h <= 200 for h in holds)
    assert len(set(holds)) > 1


def test_failing_status_callback_is_contained(fake_device, fake_clock):
    def _broken(message):
        raise RuntimeError("status sink closed")

    actions = ActionSystem(fake_device, clock=fake_clock, rng=random.Random(0), status=_broken)
    region = _region()

    assert actions.perform_action(region.action, region) is False
    assert fake_device.gestures == []
