from __future__ import annotations
import typer, json, asyncio, cv2, logging, time
from rich import print
from rich.console import Console
from rich.logging import RichHandler
from pathlib import Path
from typing import Optional
from .config import load_config
from .eye.landmarks import FaceLandmarks
from .io.camera import frames, CameraError, FrameCapture
from .io.overlay import draw_eyes
from .io.verify import HttpVerifyClient, NullVerifyClient
from .runtime.coordinator import CaptureCoordinator
from .runtime.events import Message, VerifyResult, ws_broadcast
from .runtime.session import DetectionSession, drive

app = typer.Typer(add_completion=False, help="blinkgate CLI: blink liveness gate for face verification")
out = Console(soft_wrap=True)
log = logging.getLogger("blinkgate")

def _setup_logging(verbose: bool):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s", datefmt="[%X]",
                        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)])

def _line(msg: Message) -> str:
    line = msg.model_dump_json(exclude_none=True)
    out.print(line, markup=False, highlight=False)
    return line

@app.command()
def run(config: str = typer.Option("blinkgate.yaml", help="YAML config; defaults apply when missing"),
        camera: Optional[int] = typer.Option(None, help="camera index (overrides config)"),
        verify_url: Optional[str] = typer.Option(None, help="verification endpoint (overrides config)"),
        ws: bool = typer.Option(False, help="broadcast status over WebSocket"),
        port: int = 8765,
        preview: bool = typer.Option(True, help="show the camera window with eye boxes"),
        verbose: bool = False):
    """
    Live liveness gate: count blinks from the camera and submit a verify request on each debounced blink.
    """
    _setup_logging(verbose)
    cfg = load_config(config)
    cam = cfg.camera if camera is None else cfg.camera.model_copy(update={"index": camera})
    url = verify_url or cfg.verify.url
    client = HttpVerifyClient(url, timeout=cfg.verify.timeout) if url else NullVerifyClient()
    if not url: log.warning("no verify url configured; submissions are discarded")

    queue: "asyncio.Queue[str]" = asyncio.Queue()
    capture = FrameCapture(quality=cfg.capture.jpeg_quality)

    def emit(msg: Message):
        line = _line(msg)
        if ws: queue.put_nowait(line)

    def on_result(event, outcome):
        if isinstance(outcome, VerifyResult):
            emit(Message(type="verify_result", blink=event, result=outcome))
        else:
            emit(Message(type="verify_error", blink=event, extra={"error": str(outcome)}))

    coordinator = CaptureCoordinator(capture, client, cooldown_ms=cfg.capture.cooldown_ms,
                                     blink_hold_ms=cfg.capture.blink_hold_ms, on_result=on_result)
    session = DetectionSession(cfg.blink, coordinator)

    def on_event(ev, submitted: bool):
        emit(Message(type="blink", blink=ev, status=session.status()))
        if submitted: emit(Message(type="submitted", blink=ev))

    def on_frame(f, pts) -> bool:
        st = session.status()
        if ws: queue.put_nowait(st.model_dump_json())
        if preview:
            cv2.imshow("blinkgate", draw_eyes(f["image"], pts, st.blinking))
            # press q to quit
            if cv2.waitKey(1) & 0xFF == ord('q'):
                return False
        return True

    async def producer():
        faces = FaceLandmarks(max_num_faces=1)
        try:
            await drive(session, frames(cam.index, cam.width, cam.height), faces,
                        capture=capture, on_event=on_event, on_frame=on_frame)
        finally:
            faces.close()
            if preview: cv2.destroyAllWindows()

    async def main():
        if ws:
            bcast = asyncio.create_task(ws_broadcast(queue, "0.0.0.0", port))
            try:
                await producer()
            finally:
                bcast.cancel()
        else:
            await producer()

    try:
        asyncio.run(main())
    except CameraError as e:
        print(f"[red]Camera error:[/red] {e}")
        raise typer.Exit(code=1)

@app.command()
def replay(path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSONL of {ear}, {landmarks} or {face: null} records"),
           config: Optional[str] = typer.Option(None),
           fps: float = typer.Option(30.0, help="frame rate used to timestamp records"),
           verbose: bool = False):
    """
    Feed a recorded stream through a detection session without camera or network.
    """
    _setup_logging(verbose)
    cfg = load_config(config)
    session = DetectionSession(cfg.blink)
    session.start()
    t0 = time.time(); n = 0
    for i, raw in enumerate(path.read_text().splitlines()):
        if not raw.strip(): continue
        try:
            rec = json.loads(raw)
        except ValueError as e:
            print(f"[red]line {i+1}: invalid JSON:[/red] {e}")
            raise typer.Exit(code=2)
        now = t0 + n / fps; n += 1
        try:
            if isinstance(rec, dict) and "ear" in rec:
                ev = session.process_ear(float(rec["ear"]), now)
            elif isinstance(rec, dict) and "landmarks" in rec:
                ev = session.process(rec["landmarks"], now)
            else:
                ev = session.process(None, now)
        except (TypeError, ValueError) as e:
            print(f"[red]line {i+1}: invalid record:[/red] {e}")
            raise typer.Exit(code=2)
        if ev: _line(Message(type="blink", blink=ev, status=session.status()))
    st = session.status()
    out.print(json.dumps({"frames": n, "blinks": st.blink_count, "baseline_ear": st.baseline_ear}), markup=False, highlight=False)
    session.stop()

if __name__ == "__main__":
    app()
