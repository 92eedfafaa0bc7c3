"""
Client side of the chat API.

'SSEStreamReader' turns an arbitrarily chunked byte stream back into reply
text: records may be split across reads, several records may share a read,
and multi-byte characters may be cut in half. 'ChatClient' drives it over
httpx and reports progress through an optional callback.
"""
from __future__ import annotations

import codecs
import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx

from .errors import TransportError
from .sse import DONE

logger = logging.getLogger(__name__)

CLIENT_EMPTY_PLACEHOLDER = "(no response)"
DATA_PREFIX = "data:"

UpdateCallback = Callable[[str, str], None]


class SSEStreamReader:
    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.text = ""
        self.done = False

    def feed(self, chunk: bytes) -> List[str]:
        """Consume raw bytes; return the accumulated text after each new fragment."""
        if self.done:
            return []
        self._buffer += self._decoder.decode(chunk)
        return self._drain()

    def close(self) -> List[str]:
        """Flush what is left once the underlying stream ended."""
        if self.done:
            return []
        self._buffer += self._decoder.decode(b"", final=True)
        updates = self._drain()
        if not self.done and self._buffer:
            rest, self._buffer = self._buffer, ""
            updates.extend(self._handle_line(rest))
        return updates

    def _drain(self) -> List[str]:
        updates: List[str] = []
        while not self.done:
            line, sep, rest = self._buffer.partition("\n")
            if not sep:
                break
            self._buffer = rest
            updates.extend(self._handle_line(line))
        return updates

    def _handle_line(self, line: str) -> List[str]:
        line = line.strip()
        if not line.startswith(DATA_PREFIX):
            return []
        payload = line[len(DATA_PREFIX):].strip()
        if not payload:
            return []
        if payload == DONE:
            self.done = True
            self._buffer = ""
            return []
        try:
            text = json.loads(payload).get("text")
        except (ValueError, AttributeError):
            logger.debug("Skipping malformed event payload: %r", payload[:200])
            return []
        if not isinstance(text, str) or not text:
            return []
        self.text += text
        return [self.text]


@dataclass
class StreamedReply:
    turn_id: str
    text: str
    completed: bool

    @property
    def state(self) -> str:
        return "completed" if self.text else "empty"

    @property
    def display_text(self) -> str:
        return self.text or CLIENT_EMPTY_PLACEHOLDER


class ChatClient:
    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        http: Optional[httpx.Client] = None,
        timeout: Optional[httpx.Timeout] = None,
    ) -> None:
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout or httpx.Timeout(60.0, read=None))

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "ChatClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def chat(self, prompt: str, conversation_id: str) -> str:
        try:
            r = self.http.post("/api/chat", json={"prompt": prompt, "conversationID": conversation_id})
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(f"Chat request failed: {e}", status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Chat request failed: {e}") from e
        return r.json()["reply"]

    def stream_chat(
        self,
        prompt: str,
        conversation_id: str,
        on_update: Optional[UpdateCallback] = None,
    ) -> StreamedReply:
        """Send a prompt to the streaming endpoint and collect the reply.

        `on_update(turn_id, text)` is called with the growing text after every
        fragment. Raises 'TransportError' (with the partial text) on a non-OK
        status or a broken connection.
        """
        turn_id = uuid.uuid4().hex
        reader = SSEStreamReader()

        def publish(updates: List[str]) -> None:
            if on_update is not None:
                for text in updates:
                    on_update(turn_id, text)

        body = {"prompt": prompt, "conversationID": conversation_id}
        try:
            with self.http.stream("POST", "/api/chat/stream", json=body) as r:
                if r.status_code != 200:
                    r.read()
                    raise TransportError(
                        f"Stream request failed with status {r.status_code}",
                        status_code=r.status_code,
                    )
                for chunk in r.iter_bytes():
                    publish(reader.feed(chunk))
                    if reader.done:
                        break
                publish(reader.close())
        except httpx.HTTPError as e:
            logger.warning("Stream for conversation %s broke: %s", conversation_id, e)
            raise TransportError(f"Stream interrupted: {e}", partial_text=reader.text) from e

        if not reader.done:
            logger.info("Stream for conversation %s ended without [DONE]", conversation_id)
        return StreamedReply(turn_id=turn_id, text=reader.text, completed=reader.done)

    def reset(self, conversation_id: str) -> Dict[str, Any]:
        try:
            r = self.http.post("/api/reset", json={"conversationID": conversation_id})
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(f"Reset failed: {e}", status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Reset failed: {e}") from e
        return r.json()
