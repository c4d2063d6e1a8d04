from __future__ import annotations
import cv2, numpy as np
from ..eye.geometry import LEFT_EYE, RIGHT_EYE

GREEN = (129, 185, 16)
RED = (68, 68, 239)

def _eye_box(pts, idx, w, h, pad=5):
    sel = np.asarray([pts[idx["left"]], pts[idx["right"]], pts[idx["top"]], pts[idx["bottom"]]], dtype=np.float64)
    xs = sel[:,0]*w; ys = sel[:,1]*h
    return (int(xs.min())-pad, int(ys.min())-pad), (int(xs.max())+pad, int(ys.max())+pad)

def draw_eyes(frame_bgr: np.ndarray, pts, blinking: bool=False) -> np.ndarray:
    """Rectangles around both eyes on a copy of the frame; red while blinking."""
    out = frame_bgr.copy()
    if pts is None: return out
    h,w = out.shape[:2]
    color = RED if blinking else GREEN
    for idx in (LEFT_EYE, RIGHT_EYE):
        p0, p1 = _eye_box(pts, idx, w, h)
        cv2.rectangle(out, p0, p1, color, 2)
    return out
