from __future__ import annotations

from typing import Optional


class ChatError(Exception):
    """Base class for errors raised by the chat pipeline."""


class InvalidInput(ChatError):
    """The prompt or conversation id cannot be processed (nothing was stored)."""


class UpstreamError(ChatError):
    """The model backend failed. The user turn may already be stored."""


class TransportError(ChatError):
    """Client side failure talking to the chat server.

    `partial_text` keeps whatever reply text had been accumulated before the
    failure so callers can still show it.
    """

    def __init__(self, message: str, partial_text: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.partial_text = partial_text
        self.status_code = status_code
