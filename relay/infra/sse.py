from __future__ import annotations
import re
from typing import Callable, Dict, Optional
from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from relay.core.messages import Message

MEDIA_TYPE = "text/event-stream"

SSE_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Cache-Control": "no-store",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

_LINE_BREAK = re.compile(r"\r\n|\r|\n")

OPEN_COMMENT = ": ok\n\n"
PING_FRAME = "event: ping\ndata: ping\n\n"


def frame(event: str, data: str) -> str:
    # every line of the payload needs its own data: field; SSE ends lines on CR, LF or CRLF
    lines = "".join(f"data: {line}\n" for line in _LINE_BREAK.split(data))
    return f"event: {event}\n{lines}\n"


def message_frame(message: Message) -> str:
    return frame("message", f"<li><b>{message.sender}</b>{message.content}</li>")


class EventStreamResponse(StreamingResponse):
    """StreamingResponse that always closes its body iterator.

    Starlette leaves the iterator to the garbage collector when a write to
    the peer fails; closing it here runs the session's cleanup right away.
    ``on_close`` runs afterwards, also when the iterator was never started.
    """

    def __init__(
        self,
        content,
        headers: Dict[str, str] | None = None,
        on_close: Optional[Callable[[], None]] = None,
    ) -> None:
        merged = dict(SSE_HEADERS)
        merged.update(headers or {})
        super().__init__(content, media_type=MEDIA_TYPE, headers=merged)
        self.on_close = on_close

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            aclose = getattr(self.body_iterator, "aclose", None)
            if aclose is not None:
                await aclose()
            # an iterator that never started has no finally of its own to run
            if self.on_close is not None:
                self.on_close()
