"""Server-sent event stream for MCP clients using the SSE transport.

The stream announces a session id and then only sends keep-alive comments;
requests still arrive as POSTs. It ends when the client disconnects or the
application begins shutting down.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable

import orjson
import structlog


logger = structlog.get_logger(__name__)

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def open_event(session_id: str) -> str:
    data = orjson.dumps({"sessionId": session_id}).decode()
    return f"event: open\ndata: {data}\n\n"


KEEPALIVE_COMMENT = ": ping\n\n"


async def keepalive_stream(
    session_id: str,
    *,
    interval: float,
    shutdown: asyncio.Event,
    is_disconnected: Callable[[], Awaitable[bool]],
) -> AsyncIterator[str]:
    """Yield the open event, then a ping comment every ``interval`` seconds."""
    logger.debug("gateway_stream_opened", session_id=session_id)
    try:
        yield open_event(session_id)
        while not shutdown.is_set():
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=interval)
            except TimeoutError:
                pass
            if shutdown.is_set() or await is_disconnected():
                break
            yield KEEPALIVE_COMMENT
    finally:
        logger.debug("gateway_stream_closed", session_id=session_id)
