import asyncio, pytest
from blinkgate.config import BlinkConfig
from blinkgate.fuse.state import Phase
from blinkgate.io.verify import NullVerifyClient
from blinkgate.runtime.coordinator import CaptureCoordinator
from blinkgate.runtime.session import DetectionSession, drive
from test_blink import fake_frame

BLINK = [0.30]*21 + [0.10, 0.10, 0.31]

def test_process_requires_start():
    s = DetectionSession()
    with pytest.raises(RuntimeError):
        s.process_ear(0.3)

def test_status_reports_progress():
    s = DetectionSession(); s.start()
    for i, e in enumerate(BLINK):
        s.process_ear(e, now=50.0 + i)
    st = s.status()
    assert st.calibrated and st.face_detected
    assert st.blink_count == 1 and st.phase == "OPEN"
    assert st.baseline_ear == pytest.approx(0.30, abs=0.01)
    s.process(None)
    assert not s.status().face_detected and s.status().ear is None

def test_stop_and_restart_resets_everything():
    client = NullVerifyClient()
    async def main():
        co = CaptureCoordinator(lambda: b"jpeg", client)
        s = DetectionSession(BlinkConfig(), co); s.start()
        for i, e in enumerate(BLINK):
            s.process(fake_frame(e), now=50.0 + i)
        assert s.state.blink_count == 1
        assert co.state.in_flight and co.submissions == 1
        s.stop()
        assert not s.active
        for _ in range(2):
            s.start()
            assert s.state.baseline.frame_count == 0
            assert s.state.machine.phase is Phase.OPEN
            assert s.state.blink_count == 0
            assert co.state.last_capture_ms is None and not co.state.in_flight
            s.stop()
        await co.drain()
        assert not co.state.in_flight
    asyncio.run(main())
    # the blink belonged to the stopped session, so nothing is sent
    assert client.calls == []

def test_restart_never_submits_previous_sessions_blink():
    client = NullVerifyClient()
    source = {"image": b"session-1"}
    async def main():
        co = CaptureCoordinator(lambda: source["image"], client)
        s = DetectionSession(BlinkConfig(), co); s.start()
        for i, e in enumerate(BLINK):
            s.process_ear(e, now=70.0 + i)
        assert co.submissions == 1
        s.stop(); s.start()
        source["image"] = b"session-2"
        await co.drain()
        assert not co.state.in_flight
        # a blink in the new session submits normally
        for i, e in enumerate(BLINK):
            s.process_ear(e, now=200.0 + i)
        await co.drain()
    asyncio.run(main())
    assert [img for img, _ in client.calls] == [b"session-2"]
    assert len(client.calls) == 1

class ScriptedDetector:
    """Replays prepared landmark frames; None means no face."""
    def __init__(self, frames):
        self.frames = list(frames)
    def __call__(self, image):
        pts = self.frames.pop(0)
        return [] if pts is None else [{"pts": pts, "score": 1.0}]

def test_drive_uses_injected_detector():
    ears = [0.30]*21 + [None, 0.10, 0.10, 0.31, 0.30]
    detector = ScriptedDetector(None if e is None else fake_frame(e) for e in ears)
    client = NullVerifyClient(); events = []; seen = []
    async def main():
        co = CaptureCoordinator(lambda: b"still", client)
        s = DetectionSession(BlinkConfig(), co)
        count = await drive(s, ({"image": i} for i in range(len(ears))), detector,
                            on_event=lambda ev, sub: events.append(sub),
                            on_frame=lambda f, pts: seen.append(pts is not None) or True)
        await co.drain()
        assert not s.active and s.state.blink_count == 0
        return count
    assert asyncio.run(main()) == 1
    assert events == [True]
    assert seen.count(False) == 1 and len(seen) == len(ears)
    assert len(client.calls) == 1

def test_drive_stops_when_frame_callback_declines():
    detector = ScriptedDetector([fake_frame(0.3)]*5)
    seen = []
    async def main():
        s = DetectionSession()
        await drive(s, ({"image": i} for i in range(5)), detector,
                    on_frame=lambda f, pts: seen.append(f["image"]) or f["image"] < 2)
        assert not s.active
    asyncio.run(main())
    assert seen == [0, 1, 2]
