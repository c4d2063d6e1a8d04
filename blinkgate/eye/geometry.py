from __future__ import annotations
import numpy as np
from typing import Any, Dict, List, NamedTuple, Protocol, Tuple

# FaceMesh indices for the six EAR points of each eye. Bound to the detector's
# landmark schema: revalidate if the mesh topology changes.
LEFT_EYE = {"top":159, "bottom":145, "left":33, "right":133, "top_inner":158, "bottom_inner":153}
RIGHT_EYE = {"top":386, "bottom":374, "left":362, "right":263, "top_inner":385, "bottom_inner":380}

MIN_POINTS = max(max(LEFT_EYE.values()), max(RIGHT_EYE.values())) + 1

class EyeKeyPoints(NamedTuple):
    top: np.ndarray
    bottom: np.ndarray
    left: np.ndarray
    right: np.ndarray
    top_inner: np.ndarray
    bottom_inner: np.ndarray

def _as_points(frame) -> np.ndarray:
    pts = np.asarray(frame, dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] < 2:
        raise ValueError(f"landmark frame must be (N,2), got shape {pts.shape}")
    if pts.shape[0] < MIN_POINTS:
        raise ValueError(f"landmark frame has {pts.shape[0]} points, eye indices need {MIN_POINTS}")
    return pts[:, :2]

def eye_points(pts: np.ndarray, idx: dict) -> EyeKeyPoints:
    return EyeKeyPoints(**{name: pts[i] for name, i in idx.items()})

def extract_eyes(frame) -> Tuple[EyeKeyPoints, EyeKeyPoints]:
    """Return (left, right) key points from one frame of normalized landmarks."""
    pts = _as_points(frame)
    return eye_points(pts, LEFT_EYE), eye_points(pts, RIGHT_EYE)

class LandmarkDetector(Protocol):
    """Anything that turns a BGR image into face dicts carrying `pts`, largest face first."""
    def __call__(self, frame_bgr) -> List[Dict[str, Any]]: ...

def primary_face(faces: List[Dict[str, Any]]):
    """Landmarks of the first (largest) face, or None when nothing was detected."""
    return faces[0]["pts"] if faces else None
