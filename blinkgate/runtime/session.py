from __future__ import annotations
import asyncio, logging
from typing import Any, Callable, Dict, Iterable, Optional
from .coordinator import CaptureCoordinator
from .events import BlinkEvent, Status
from ..config import BlinkConfig
from ..eye.geometry import LandmarkDetector, primary_face
from ..fuse.state import SessionState, step, tick

log = logging.getLogger(__name__)

class DetectionSession:
    """
    One camera activation. Frames go through `process` strictly one at a
    time; stopping discards all per-session state, including any submission
    still in flight.
    """
    def __init__(self, cfg: BlinkConfig = BlinkConfig(), coordinator: Optional[CaptureCoordinator] = None):
        self.cfg = cfg
        self.coordinator = coordinator
        self.state = SessionState()
        self.active = False

    def _reset(self):
        self.state = SessionState()
        if self.coordinator: self.coordinator.reset()

    def start(self):
        self._reset()
        self.active = True
        log.info("detection session started")

    def stop(self):
        self._reset()
        if self.active: log.info("detection session stopped")
        self.active = False

    def process(self, frame, now: Optional[float] = None) -> Optional[BlinkEvent]:
        """Run one LandmarkFrame (None when no face was found)."""
        return self._advance(lambda st: tick(st, frame, self.cfg, now))

    def process_ear(self, ear: float, now: Optional[float] = None) -> Optional[BlinkEvent]:
        """Same as `process` for a precomputed EAR sample."""
        return self._advance(lambda st: step(st, ear, self.cfg, now))

    def _advance(self, fn) -> Optional[BlinkEvent]:
        if not self.active:
            raise RuntimeError("detection session is not running")
        calibrated = self.state.baseline.ready(self.cfg.baseline_frames)
        self.state, event = fn(self.state)
        if not calibrated and self.state.baseline.ready(self.cfg.baseline_frames):
            log.info("baseline calibrated: EAR %.3f", self.state.baseline.baseline_ear)
        if event is not None:
            log.debug("blink #%d ear=%.3f drop=%.0f%%", self.state.blink_count, event.trigger_ear, event.drop_percent)
            if self.coordinator: self.coordinator.on_blink(event)
        return event

    def status(self) -> Status:
        st = self.state
        return Status(face_detected=st.face_detected,
                      calibrated=st.baseline.ready(self.cfg.baseline_frames),
                      phase=st.machine.phase.value,
                      blink_count=st.blink_count,
                      blinking=bool(self.coordinator and self.coordinator.blinking()),
                      ear=st.ear,
                      baseline_ear=st.baseline.baseline_ear)

async def drive(session: DetectionSession, source: Iterable[Dict[str, Any]], detector: LandmarkDetector,
                capture=None, on_event: Optional[Callable[[BlinkEvent, bool], None]] = None,
                on_frame: Optional[Callable[[Dict[str, Any], Any], bool]] = None) -> int:
    """
    Run camera frames through `detector` and the session until the source
    ends or `on_frame` returns False. `on_event` gets each blink and whether
    it produced a submission. The session is stopped on exit; returns the
    blink count.
    """
    session.start()
    co = session.coordinator
    try:
        for f in source:
            if capture is not None: capture.update(f["image"])
            pts = primary_face(detector(f["image"]))
            submitted = co.submissions if co else 0
            ev = session.process(pts)
            if ev is not None and on_event:
                on_event(ev, bool(co and co.submissions > submitted))
            if on_frame and on_frame(f, pts) is False:
                break
            # let pending submissions make progress between frames
            await asyncio.sleep(0)
        return session.state.blink_count
    finally:
        session.stop()
        if capture is not None: capture.clear()
