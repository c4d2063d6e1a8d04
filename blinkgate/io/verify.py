from __future__ import annotations
import asyncio, base64, json, logging
import urllib.request, urllib.error
from datetime import datetime
from typing import Optional, Protocol
from ..runtime.events import VerifyResult

log = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

class VerifyError(RuntimeError):
    pass

def format_timestamp(dt: Optional[datetime] = None) -> str:
    return (dt or datetime.now()).strftime(TIMESTAMP_FORMAT)

class VerifyClient(Protocol):
    async def verify(self, image: bytes, timestamp: str) -> VerifyResult: ...

class NullVerifyClient:
    """Accepts every submission without sending it anywhere."""
    def __init__(self):
        self.calls: list[tuple[bytes, str]] = []

    async def verify(self, image: bytes, timestamp: str) -> VerifyResult:
        self.calls.append((image, timestamp))
        return VerifyResult(status=0)

class HttpVerifyClient:
    """
    POSTs the captured still and its timestamp as JSON to the verification
    endpoint. The blocking request runs in a worker thread.
    """
    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    def build_request(self, image: bytes, timestamp: str) -> urllib.request.Request:
        payload = {
            "image": "data:image/jpeg;base64," + base64.b64encode(image).decode("ascii"),
            "timestamp": timestamp,
        }
        return urllib.request.Request(self.url, data=json.dumps(payload).encode("utf-8"),
                                      headers={"Content-Type": "application/json"}, method="POST")

    def _post(self, req: urllib.request.Request) -> VerifyResult:
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read()
                status = resp.status
        except urllib.error.HTTPError as e:
            raise VerifyError(f"verify endpoint returned HTTP {e.code}") from e
        except (urllib.error.URLError, OSError) as e:
            raise VerifyError(f"verify endpoint unreachable: {e}") from e
        try:
            body = json.loads(raw.decode("utf-8")) if raw else {}
        except ValueError:
            body = {"raw": raw.decode("utf-8", "replace")}
        if not isinstance(body, dict): body = {"data": body}
        return VerifyResult(status=status, body=body)

    async def verify(self, image: bytes, timestamp: str) -> VerifyResult:
        req = self.build_request(image, timestamp)
        log.debug("POST %s (%d bytes, ts=%s)", self.url, len(image), timestamp)
        return await asyncio.to_thread(self._post, req)
