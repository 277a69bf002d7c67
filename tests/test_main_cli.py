import json

import pytest

from gameauto import main as cli


class _Device:
    instances = []

    def __init__(self, cfg):
        self.cfg = cfg
        self.keys = []
        _Device.instances.append(self)

    def connect(self):
        return True

    def press_key(self, name):
        self.keys.append(name)
        return True


@pytest.fixture()
def fake_adb_device(monkeypatch):
    _Device.instances = []
    monkeypatch.setattr(cli, "AdbDevice", _Device)
    return _Device


def test_run_requires_script_argument():
    with pytest.raises(SystemExit):
        cli.main(["run"])


def test_missing_script_exits_with_2(fake_adb_device):
    assert cli.main(["run", "/nonexistent/script.json"]) == 2
    assert fake_adb_device.instances == []


def test_runs_linear_script_with_overrides(tmp_path, fake_adb_device):
    script = tmp_path / "linear.json"
    script.write_text(
        json.dumps(
            {
                "steps": [
                    {"id": "s", "type": "START", "next": "end"},
                    {"id": "end", "type": "STOP"},
                ]
            }
        ),
        encoding="utf-8",
    )

    code = cli.main(
        ["run", str(script), "--adb-addr", "10.0.0.2:5555", "--adb-path", "/opt/adb", "--package", "com.x"]
    )

    assert code == 0
    (device,) = fake_adb_device.instances
    assert device.cfg.adb_addr == "10.0.0.2:5555"
    assert device.cfg.adb_path == "/opt/adb"
    assert device.cfg.pkg_name == "com.x"
