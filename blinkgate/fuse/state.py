from __future__ import annotations
import time
from enum import Enum
from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict
from ..calibrate.baseline import BaselineState, update_baseline, thresholds
from ..config import BlinkConfig
from ..eye.blink import frame_ear
from ..runtime.events import BlinkEvent

class Phase(str, Enum):
    OPEN = "OPEN"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"
    OPENING = "OPENING"

class BlinkMachineState(BaseModel):
    model_config = ConfigDict(frozen=True)
    phase: Phase = Phase.OPEN
    closed_frames: int = 0
    open_frames: int = 0
    last_ear: float = 1.0
    trough_ear: Optional[float] = None  # lowest EAR since leaving OPEN

class SessionState(BaseModel):
    """Everything one detection session mutates per frame."""
    model_config = ConfigDict(frozen=True)
    baseline: BaselineState = BaselineState()
    machine: BlinkMachineState = BlinkMachineState()
    blink_count: int = 0
    face_detected: bool = False
    ear: Optional[float] = None

def _reopen_confirmed(open_frames:int, ear:float, base:float, recovered:bool, rapid:bool, cfg:BlinkConfig) -> bool:
    return (open_frames > cfg.min_open_frames
            or recovered
            or (ear / base >= cfg.reopen_ratio and open_frames > 0)
            or (rapid and ear > base * cfg.rapid_recovery_ratio))

def step(state: SessionState, ear: float, cfg: BlinkConfig = BlinkConfig(), now: Optional[float] = None) -> Tuple[SessionState, Optional[BlinkEvent]]:
    """
    Advance the session by one EAR sample.
    OPEN -> CLOSING -> CLOSED -> OPENING -> OPEN, with a fast path
    OPEN -> CLOSED for single-frame collapses. A BlinkEvent is returned on the
    frame that completes the cycle.
    """
    now = time.time() if now is None else now
    baseline = update_baseline(state.baseline, ear, cfg.baseline_frames, cfg.ema_decay)
    m = state.machine
    prev = m.last_ear
    state = state.model_copy(update={"baseline": baseline, "face_detected": True, "ear": ear})

    if not baseline.ready(cfg.baseline_frames) or baseline.baseline_ear <= 0:
        return state.model_copy(update={"machine": m.model_copy(update={"last_ear": ear})}), None

    base = baseline.baseline_ear
    thr = thresholds(base, cfg)
    is_closed = ear < thr.closed
    is_fast_closed = ear < thr.fast_closed
    recovered = ear >= thr.fast_recovery
    drop_percent = (base - ear) / base * 100.0
    rapid = prev > 0 and (prev - ear) / prev > cfg.rapid_drop_ratio

    phase, closed, opened, trough = m.phase, m.closed_frames, m.open_frames, m.trough_ear
    event = None

    if phase is Phase.OPEN:
        if is_fast_closed and rapid:
            phase, closed, opened, trough = Phase.CLOSED, 1, 0, ear
        elif is_closed:
            phase, closed, opened, trough = Phase.CLOSING, 1, 0, ear

    elif phase is Phase.CLOSING:
        if is_closed or is_fast_closed:
            closed += 1; trough = min(trough if trough is not None else ear, ear)
            if closed > cfg.min_closed_frames or is_fast_closed or rapid:
                phase = Phase.CLOSED
        elif drop_percent > cfg.glitch_drop_percent and closed > 0:
            # dipped and came straight back: still a blink
            phase = Phase.CLOSED
        else:
            phase, closed, trough = Phase.OPEN, 0, None

    elif phase is Phase.CLOSED:
        if not is_closed or recovered:
            phase, opened = Phase.OPENING, 1
        else:
            trough = min(trough if trough is not None else ear, ear)

    elif phase is Phase.OPENING:
        if not is_closed or recovered:
            opened += 1
        else:
            phase, opened = Phase.CLOSED, 0

    # CLOSED -> OPENING above is confirmed on the same frame
    if phase is Phase.OPENING:
        if _reopen_confirmed(opened, ear, base, recovered, rapid, cfg):
            low = trough if trough is not None else ear
            event = BlinkEvent(trigger_ear=low, drop_percent=(base - low) / base * 100.0, timestamp=now)
            phase, closed, opened, trough = Phase.OPEN, 0, 0, None

    machine = BlinkMachineState(phase=phase, closed_frames=closed, open_frames=opened, last_ear=ear, trough_ear=trough)
    update = {"machine": machine}
    if event is not None:
        update["blink_count"] = state.blink_count + 1
    return state.model_copy(update=update), event

def tick(state: SessionState, frame, cfg: BlinkConfig = BlinkConfig(), now: Optional[float] = None) -> Tuple[SessionState, Optional[BlinkEvent]]:
    """
    One camera frame through the pipeline. `frame` is a LandmarkFrame, or
    None when no face was detected; a missing face never advances the
    baseline or the machine.
    """
    if frame is None:
        update = {"face_detected": False, "ear": None}
        if cfg.face_loss == "reset":
            update["machine"] = BlinkMachineState()
        return state.model_copy(update=update), None
    return step(state, frame_ear(frame), cfg, now)
