import json
import time

import httpx
import numpy as np
import pytest

from gameauto.modules.ai.client import AiCheckClient
from gameauto.modules.scene.models import Anchor, SceneNode
from gameauto.modules.scene.perception import PerceptionSystem

W, H = 1280, 720
TPL_X, TPL_Y, TPL_W, TPL_H = 600, 330, 80, 60


@pytest.fixture()
def screen():
    rng = np.random.default_rng(11)
    img = rng.integers(0, 256, size=(H, W, 3), dtype=np.uint8)
    # 左上角纯绿色块（BGR）
    img[0:72, 0:128] = (0, 255, 0)
    return img


@pytest.fixture()
def template(screen):
    return screen[TPL_Y : TPL_Y + TPL_H, TPL_X : TPL_X + TPL_W].copy()


def _image_anchor(**kw):
    data = {"id": "img", "matchType": "image", "template": "tpl", "w": 6, "h": 8}
    data.update(kw)
    return Anchor.model_validate(data)


def _node(anchors, **kw):
    return SceneNode.model_validate({"id": "n", "anchors": anchors, **kw})


def _system(template=None, **kw):
    return PerceptionSystem(template_loader=lambda _src: template, **kw)


def test_high_score_pardons_wrong_position(screen, template):
    anchor = _image_anchor(x=0, y=0)
    node = _node([anchor], resolution={"w": W, "h": H})
    perception = _system(template)

    assert perception.is_state_active(screen, node, {}) is True


def test_wrong_position_rejected_without_pardon(screen, template):
    perception = _system(template, high_score=1.01)
    wrong = _image_anchor(x=0, y=0)
    right = _image_anchor(id="img2", x=50, y=50)
    res = {"w": W, "h": H}

    assert perception.is_state_active(screen, _node([wrong], resolution=res), {}) is False
    assert perception.is_state_active(screen, _node([right], resolution=res), {}) is True


def test_percent_position_check_without_resolution(screen, template):
    perception = _system(template, high_score=1.01)
    near = _image_anchor(x=48, y=52)
    far = _image_anchor(id="far", x=95, y=5)

    assert perception.is_state_active(screen, _node([near]), {}) is True
    assert perception.is_state_active(screen, _node([far]), {}) is False


def test_templates_are_decoded_once_per_anchor(screen, template):
    calls = []

    def loader(src):
        calls.append(src)
        return template

    perception = PerceptionSystem(template_loader=loader)
    node = _node([_image_anchor()])
    perception.is_state_active(screen, node, {})
    perception.is_state_active(screen, node, {})
    assert calls == ["tpl"]

    perception.clear_cache()
    perception.is_state_active(screen, node, {})
    assert len(calls) == 2


def test_template_decode_failure_is_a_miss(screen):
    def loader(_src):
        raise ValueError("bad base64")

    perception = PerceptionSystem(template_loader=loader)
    assert perception.is_state_active(screen, _node([_image_anchor()]), {}) is False


def test_color_anchor(screen):
    perception = PerceptionSystem()
    green = {"id": "c", "matchType": "COLOR", "x": 0, "y": 0, "w": 5, "h": 5, "targetColor": "#00FF00"}
    red = dict(green, id="r", targetColor="#FF0000")

    assert perception.is_state_active(screen, _node([green]), {}) is True
    assert perception.is_state_active(screen, _node([red]), {}) is False


def test_min_matches(screen):
    perception = PerceptionSystem()
    green = {"id": "c", "matchType": "color", "x": 0, "y": 0, "w": 5, "h": 5, "targetColor": "#00FF00"}
    red = dict(green, id="r", targetColor="#FF0000")

    assert perception.is_state_active(screen, _node([green, red]), {}) is False
    assert perception.is_state_active(screen, _node([green, red], minMatches=1), {}) is True


def test_empty_anchor_list_is_never_active(screen):
    assert PerceptionSystem().is_state_active(screen, _node([]), {}) is False


def test_text_anchor_contains_ignoring_case(screen):
    perception = PerceptionSystem(text_reader=lambda img: "Hello\nWorld")
    anchor = {"id": "t", "matchType": "text", "x": 10, "y": 10, "w": 20, "h": 10, "targetText": "WORLD"}
    missing = dict(anchor, id="t2", targetText="bye")

    assert perception.is_state_active(screen, _node([anchor]), {}) is True
    assert perception.is_state_active(screen, _node([missing]), {}) is False


def test_text_anchor_extracts_variable(screen):
    perception = PerceptionSystem(text_reader=lambda img: "金币: 1,234")
    anchor = {"id": "t", "matchType": "text", "x": 10, "y": 10, "w": 20, "h": 10, "variableName": "gold"}
    variables = {}

    assert perception.is_state_active(screen, _node([anchor]), variables) is True
    assert variables == {"gold": 1234}


def test_text_anchor_timeout_is_a_miss(screen):
    def slow_reader(img):
        time.sleep(0.5)
        return "late"

    perception = PerceptionSystem(text_reader=slow_reader, ocr_timeout_sec=0.05)
    anchor = {"id": "t", "matchType": "text", "x": 10, "y": 10, "w": 20, "h": 10, "targetText": "late"}

    assert perception.is_state_active(screen, _node([anchor]), {}) is False


def _ai_client(payload, seen):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=payload)

    return AiCheckClient("https://ai.test/check", api_secret="s3cret", transport=httpx.MockTransport(handler))


def test_ai_anchor_match(screen):
    seen = []
    perception = PerceptionSystem(ai_client=_ai_client({"match": True, "reason": "button visible"}, seen))
    anchor = {"id": "a", "matchType": "ai", "x": 0, "y": 0, "w": 20, "h": 20, "targetPrompt": "is there a button?"}

    assert perception.is_state_active(screen, _node([anchor]), {}) is True
    body = json.loads(seen[0].content)
    assert body["prompt"] == "is there a button?"
    assert body["imageBase64"]
    assert "mode" not in body
    assert seen[0].headers["x-api-secret"] == "s3cret"


def test_ai_anchor_extract_mode(screen):
    seen = []
    perception = PerceptionSystem(ai_client=_ai_client({"value": "Lv. 42"}, seen))
    anchor = {
        "id": "a",
        "matchType": "ai",
        "x": 0,
        "y": 0,
        "w": 20,
        "h": 20,
        "targetPrompt": "level?",
        "variableName": "level",
    }
    variables = {}

    assert perception.is_state_active(screen, _node([anchor]), variables) is True
    assert json.loads(seen[0].content)["mode"] == "extract"
    assert variables == {"level": 42}


def test_ai_errors_are_a_miss(screen):
    def handler(request):
        return httpx.Response(500, text="upstream down")

    client = AiCheckClient("https://ai.test/check", transport=httpx.MockTransport(handler))
    perception = PerceptionSystem(ai_client=client)
    anchor = {"id": "a", "matchType": "ai", "x": 0, "y": 0, "w": 20, "h": 20, "targetPrompt": "?"}

    assert perception.is_state_active(screen, _node([anchor]), {}) is False


def test_triggers_are_or_combined(screen):
    perception = PerceptionSystem()
    node = _node([])
    green = Anchor.model_validate(
        {"id": "g", "matchType": "color", "x": 0, "y": 0, "w": 5, "h": 5, "targetColor": "#00FF00"}
    )
    red = Anchor.model_validate(
        {"id": "r", "matchType": "color", "x": 0, "y": 0, "w": 5, "h": 5, "targetColor": "#FF0000"}
    )

    assert perception.any_trigger_holds(screen, [], {}, node) is True
    assert perception.any_trigger_holds(screen, [red, green], {}, node) is True
    assert perception.any_trigger_holds(screen, [red], {}, node) is False
