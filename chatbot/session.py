"""
Chat turn coordination.

'ChatSession' runs one chat turn against a 'HistoryStore' and a
'ModelGateway': the user turn is stored first, the whole history (including
that turn) goes to the model, and the assistant turn is stored only once the
reply finished. A failed or aborted reply leaves the user turn in place and
adds no assistant turn.
"""
from __future__ import annotations

import logging
from typing import Iterator, List

from .config import DEFAULT_EMPTY_REPLY
from .errors import InvalidInput, UpstreamError
from .gateway import ModelGateway
from .store import HistoryStore, Role, Turn

logger = logging.getLogger(__name__)


class ChatSession:
    def __init__(
        self,
        store: HistoryStore,
        gateway: ModelGateway,
        empty_reply_placeholder: str = DEFAULT_EMPTY_REPLY,
    ) -> None:
        if not empty_reply_placeholder:
            raise ValueError("empty_reply_placeholder must not be empty")
        self.store = store
        self.gateway = gateway
        self.empty_reply_placeholder = empty_reply_placeholder

    def _begin_turn(self, prompt: str, conversation_id: str) -> List[Turn]:
        text = (prompt or "").strip()
        if not text:
            raise InvalidInput("Prompt is required.")
        if not conversation_id:
            raise InvalidInput("Invalid Conversation ID")

        self.store.append(conversation_id, Role.USER, text)
        return self.store.get(conversation_id)

    def _finish_turn(self, conversation_id: str, text: str) -> str:
        if not text:
            logger.warning("Empty reply for conversation %s, storing placeholder", conversation_id)
            text = self.empty_reply_placeholder
        self.store.append(conversation_id, Role.ASSISTANT, text)
        return text

    def reply(self, prompt: str, conversation_id: str) -> str:
        """Run a full turn and return the stored assistant text.

        Raises 'InvalidInput' before touching the store, or 'UpstreamError'
        after the user turn was stored.
        """
        history = self._begin_turn(prompt, conversation_id)
        try:
            answer = self.gateway.complete(history)
        except UpstreamError:
            logger.exception("Model call failed for conversation %s", conversation_id)
            raise
        return self._finish_turn(conversation_id, answer)

    def stream_reply(self, prompt: str, conversation_id: str) -> Iterator[str]:
        """Store the user turn now and return an iterator over reply fragments.

        Validation happens eagerly so callers can reject bad input before they
        start writing a response. The assistant turn is stored when the
        returned iterator is exhausted.
        """
        history = self._begin_turn(prompt, conversation_id)
        return self._stream(conversation_id, history)

    def _stream(self, conversation_id: str, history: List[Turn]) -> Iterator[str]:
        parts: List[str] = []
        fragments = self.gateway.stream(history)
        try:
            for fragment in fragments:
                if not fragment:
                    continue
                parts.append(fragment)
                yield fragment
        except UpstreamError:
            logger.error(
                "Model stream failed for conversation %s after %d fragments",
                conversation_id,
                len(parts),
                exc_info=True,
            )
            raise
        except GeneratorExit:
            logger.info("Stream for conversation %s closed by consumer after %d fragments", conversation_id, len(parts))
            raise
        finally:
            close = getattr(fragments, "close", None)
            if close is not None:
                close()

        self._finish_turn(conversation_id, "".join(parts))

    def reset(self, conversation_id: str) -> None:
        self.store.clear(conversation_id)
        logger.info("Cleared history for conversation %s", conversation_id)
