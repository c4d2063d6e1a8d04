from __future__ import annotations
import math
from typing import NamedTuple, Optional, Tuple
from pydantic import BaseModel, ConfigDict
from ..config import BlinkConfig

class BaselineState(BaseModel):
    """
    Eyes-open reference EAR for one session. The first `window` samples are
    averaged; after that the baseline follows an exponential moving average so
    it tracks distance and lighting drift without re-calibrating.
    """
    model_config = ConfigDict(frozen=True)

    baseline_ear: Optional[float] = None
    samples: Tuple[float, ...] = ()
    frame_count: int = 0

    def ready(self, window: int = 20) -> bool:
        return self.frame_count > window and self.baseline_ear is not None

class Thresholds(NamedTuple):
    closed: float
    fast_closed: float
    fast_recovery: float

def update_baseline(state: BaselineState, ear: float, window: int = 20, decay: float = 0.99) -> BaselineState:
    n = state.frame_count + 1
    if n <= window:
        samples = state.samples + (float(ear),)
        baseline = math.fsum(samples) / len(samples) if n == window else state.baseline_ear
        return state.model_copy(update={"samples": samples, "frame_count": n, "baseline_ear": baseline})
    baseline = state.baseline_ear * decay + ear * (1.0 - decay)
    return state.model_copy(update={"frame_count": n, "baseline_ear": baseline})

def thresholds(baseline_ear: float, cfg: BlinkConfig) -> Thresholds:
    return Thresholds(closed=baseline_ear * cfg.ear_drop_ratio,
                      fast_closed=baseline_ear * cfg.fast_blink_drop,
                      fast_recovery=baseline_ear * cfg.fast_blink_recovery)
