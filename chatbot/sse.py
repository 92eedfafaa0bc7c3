from __future__ import annotations

import json
import logging
from typing import Iterator

from .errors import UpstreamError

logger = logging.getLogger(__name__)

SSE_MEDIA_TYPE = "text/event-stream"
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
DONE = "[DONE]"


def format_event(data: str) -> str:
    return f"data: {data}\n\n"


def encode_fragment(text: str) -> str:
    return format_event(json.dumps({"text": text}))


DONE_EVENT = format_event(DONE)


def event_stream(fragments: Iterator[str]) -> Iterator[str]:
    """Frame reply fragments as SSE records and always finish with `[DONE]`.

    Once the response is on the wire an upstream failure cannot become an
    error status, so it is logged and the stream is simply terminated.
    """
    count = 0
    try:
        for fragment in fragments:
            count += 1
            yield encode_fragment(fragment)
    except UpstreamError as e:
        logger.warning("Ending event stream early after %d events: %s", count, e)
    except Exception:
        logger.exception("Unexpected error in event stream after %d events", count)
    finally:
        close = getattr(fragments, "close", None)
        if close is not None:
            close()
    yield DONE_EVENT
