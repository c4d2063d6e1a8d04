import pytest
from pydantic import ValidationError
from blinkgate.config import AppConfig, load_config

def test_defaults_when_missing(tmp_path):
    cfg = load_config(tmp_path / "nope.yaml")
    assert cfg == AppConfig()
    assert cfg.blink.baseline_frames == 20 and cfg.capture.cooldown_ms == 2000
    assert cfg.capture.blink_hold_ms == 300 and cfg.blink.face_loss == "freeze"

def test_yaml_overrides(tmp_path):
    p = tmp_path / "bg.yaml"
    p.write_text("blink:\n  baseline_frames: 10\n  face_loss: reset\ncapture:\n  cooldown_ms: 500\nverify:\n  url: http://localhost:9000/verify\n")
    cfg = load_config(p)
    assert cfg.blink.baseline_frames == 10 and cfg.blink.face_loss == "reset"
    assert cfg.capture.cooldown_ms == 500
    assert cfg.verify.url == "http://localhost:9000/verify"
    assert cfg.blink.ear_drop_ratio == 0.5

def test_empty_file(tmp_path):
    p = tmp_path / "empty.yaml"; p.write_text("")
    assert load_config(p) == AppConfig()

def test_unknown_key_rejected(tmp_path):
    p = tmp_path / "bad.yaml"; p.write_text("blink:\n  treshold: 0.2\n")
    with pytest.raises(ValidationError):
        load_config(p)

def test_invalid_policy_rejected(tmp_path):
    p = tmp_path / "bad.yaml"; p.write_text("blink:\n  face_loss: forget\n")
    with pytest.raises(ValidationError):
        load_config(p)
