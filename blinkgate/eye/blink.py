from __future__ import annotations
import numpy as np
from typing import Tuple
from .geometry import EyeKeyPoints, extract_eyes

def ear(eye: EyeKeyPoints) -> float:
    A = np.linalg.norm(eye.top - eye.bottom)
    B = np.linalg.norm(eye.top_inner - eye.bottom_inner)
    C = np.linalg.norm(eye.left - eye.right)
    # degenerate geometry reads as fully open so a tracking glitch is never a closed eye
    if C == 0: return 1.0
    return float((A + B) / (2.0 * C))

def eye_ears(frame) -> Tuple[float, float]:
    le, re = extract_eyes(frame)
    return ear(le), ear(re)

def frame_ear(frame) -> float:
    ear_l, ear_r = eye_ears(frame)
    return (ear_l + ear_r) / 2.0
