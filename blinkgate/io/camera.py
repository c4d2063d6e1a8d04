from __future__ import annotations
import cv2, time, logging
import numpy as np
from typing import Iterator, Dict, Any, Optional

log = logging.getLogger(__name__)

class CameraError(RuntimeError):
    """Camera could not be opened; the session needs an explicit restart."""

class CaptureError(RuntimeError):
    pass

def frames(camera: int|str=0, width: int=640, height: int=480) -> Iterator[Dict[str,Any]]:
    cap = cv2.VideoCapture(camera)
    if width:  cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
    if height: cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
    if not cap.isOpened():
        cap.release()
        raise CameraError(f"Cannot open camera {camera!r}")
    try:
        while True:
            ok, frame = cap.read()
            if not ok:
                log.warning("camera %r stopped delivering frames", camera)
                break
            yield {"image": frame, "meta": {"ts": time.time()}}
    finally:
        cap.release()

class FrameCapture:
    """Holds the most recent camera frame and JPEG-encodes it on request."""
    def __init__(self, quality: int = 90):
        self.quality = quality
        self._latest: Optional[np.ndarray] = None

    def update(self, frame_bgr: np.ndarray):
        self._latest = frame_bgr

    def clear(self):
        self._latest = None

    def __call__(self) -> bytes:
        frame = self._latest
        if frame is None or not isinstance(frame, np.ndarray) or frame.size == 0:
            raise CaptureError("no frame available to capture")
        ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.quality])
        if not ok:
            raise CaptureError("JPEG encoding failed")
        return buf.tobytes()
