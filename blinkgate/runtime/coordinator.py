from __future__ import annotations
import asyncio, logging, time
from datetime import datetime
from typing import Callable, Optional, Set, Union
from pydantic import BaseModel
from .events import BlinkEvent, VerifyResult
from ..io.verify import VerifyClient, format_timestamp

log = logging.getLogger(__name__)

Outcome = Union[VerifyResult, Exception]

class CaptureCoordinatorState(BaseModel):
    last_capture_ms: Optional[float] = None
    cooldown_ms: int = 2000
    in_flight: bool = False
    epoch: int = 0

class CaptureCoordinator:
    """
    Turns blink events into at most one outstanding capture+verify request,
    spaced at least `cooldown_ms` apart. `on_blink` is called from the frame
    loop and only schedules work; the request itself runs as an asyncio task.
    """
    def __init__(self, capture: Callable[[], bytes], client: VerifyClient, cooldown_ms:int=2000, blink_hold_ms:int=300,
                 clock: Callable[[], float]=time.monotonic, on_result: Optional[Callable[[BlinkEvent, Outcome], None]]=None):
        self.capture = capture
        self.client = client
        self.blink_hold_ms = blink_hold_ms
        self.clock = clock
        self.on_result = on_result
        self.state = CaptureCoordinatorState(cooldown_ms=cooldown_ms)
        self.submissions = 0
        self._blink_until = 0.0
        self._tasks: Set[asyncio.Task] = set()

    def _now_ms(self) -> float:
        return self.clock() * 1000.0

    def blinking(self, now_ms: Optional[float]=None) -> bool:
        now = self._now_ms() if now_ms is None else now_ms
        return now < self._blink_until

    def on_blink(self, event: BlinkEvent, now_ms: Optional[float]=None) -> bool:
        now = self._now_ms() if now_ms is None else now_ms
        self._blink_until = now + self.blink_hold_ms
        st = self.state
        if st.in_flight:
            log.debug("blink at %.0fms ignored: submission in flight", now)
            return False
        if st.last_capture_ms is not None and now - st.last_capture_ms < st.cooldown_ms:
            log.debug("blink at %.0fms ignored: cooldown (%.0fms since last)", now, now - st.last_capture_ms)
            return False
        task = asyncio.get_running_loop().create_task(self._submit(st.epoch, event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        st.in_flight = True
        st.last_capture_ms = now
        self.submissions += 1
        return True

    async def _submit(self, epoch: int, event: BlinkEvent):
        outcome: Outcome
        if epoch != self.state.epoch:
            log.debug("skipping submission queued by a stopped session")
            return
        try:
            image = self.capture()
            ts = format_timestamp(datetime.fromtimestamp(event.timestamp))
            outcome = await self.client.verify(image, ts)
            log.info("verify submitted at %s: status %s", ts, outcome.status)
        except Exception as e:
            log.error("capture/verify failed: %s", e)
            outcome = e
        if epoch != self.state.epoch:
            log.debug("dropping verify outcome from a stopped session")
            return
        self.state.in_flight = False
        if self.on_result:
            try:
                self.on_result(event, outcome)
            except Exception:
                log.exception("verify result handler failed")

    def reset(self):
        for task in list(self._tasks):
            task.cancel()
        epoch = self.state.epoch + 1
        self.state = CaptureCoordinatorState(cooldown_ms=self.state.cooldown_ms, epoch=epoch)
        self.submissions = 0
        self._blink_until = 0.0

    async def drain(self):
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
