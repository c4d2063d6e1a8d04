from __future__ import annotations
import yaml
from pathlib import Path
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

class BlinkConfig(_Section):
    """
    Tuning for calibration and the blink state machine. Ratios are fractions
    of the tracked baseline EAR.
    """
    baseline_frames: int = Field(20, ge=1)
    ema_decay: float = Field(0.99, gt=0.0, lt=1.0)
    ear_drop_ratio: float = 0.5          # closed-eye threshold
    fast_blink_drop: float = 0.35        # stricter threshold for single-frame blinks
    fast_blink_recovery: float = 0.75    # reopened enough to close a fast blink
    rapid_drop_ratio: float = 0.3        # frame-to-frame collapse
    glitch_drop_percent: float = 30.0
    reopen_ratio: float = 0.7
    rapid_recovery_ratio: float = 0.65
    min_closed_frames: int = Field(0, ge=0)
    min_open_frames: int = Field(0, ge=0)
    face_loss: Literal["freeze", "reset"] = "freeze"

class CaptureConfig(_Section):
    cooldown_ms: int = Field(2000, ge=0)
    blink_hold_ms: int = Field(300, ge=0)
    jpeg_quality: int = Field(90, ge=1, le=100)

class CameraConfig(_Section):
    index: int = 0
    width: int = 640
    height: int = 480

class VerifyConfig(_Section):
    url: Optional[str] = None
    timeout: float = Field(10.0, gt=0)

class AppConfig(_Section):
    blink: BlinkConfig = BlinkConfig()
    capture: CaptureConfig = CaptureConfig()
    camera: CameraConfig = CameraConfig()
    verify: VerifyConfig = VerifyConfig()

def load_config(path: str | Path | None) -> AppConfig:
    if path is None or not Path(path).exists():
        return AppConfig()
    with open(path, "r") as f: cfg = yaml.safe_load(f) or {}
    return AppConfig.model_validate(cfg)
