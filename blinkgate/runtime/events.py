from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Literal, Dict, Any
import asyncio, logging, websockets, time

log = logging.getLogger(__name__)

class BlinkEvent(BaseModel):
    model_config = ConfigDict(frozen=True)
    trigger_ear: float
    drop_percent: float
    timestamp: float = Field(default_factory=lambda: time.time())

class VerifyResult(BaseModel):
    status: int
    body: Dict[str, Any] = {}

class Status(BaseModel):
    type: Literal["status"] = "status"
    ts: float = Field(default_factory=lambda: time.time())
    face_detected: bool = False
    calibrated: bool = False
    phase: str = "OPEN"
    blink_count: int = 0
    blinking: bool = False
    ear: Optional[float] = None
    baseline_ear: Optional[float] = None

class Message(BaseModel):
    """One line on the UI feed."""
    type: Literal["blink","submitted","verify_result","verify_error","status"]
    ts: float = Field(default_factory=lambda: time.time())
    blink: Optional[BlinkEvent] = None
    status: Optional[Status] = None
    result: Optional[VerifyResult] = None
    extra: Dict[str, Any] = {}

async def ws_broadcast(queue: "asyncio.Queue[str]", host="0.0.0.0", port=8765):
    clients=set()
    async def handler(websocket):
        clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            clients.discard(websocket)
    async def pump():
        while True:
            msg = await queue.get()
            if clients:
                results = await asyncio.gather(*[c.send(msg) for c in list(clients)], return_exceptions=True)
                for r in results:
                    if isinstance(r, Exception): log.debug("dropped ws client: %s", r)
    async with websockets.serve(handler, host, port):
        log.info("status feed on ws://%s:%d", host, port)
        await pump()
