from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Dict, List


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    role: Role
    text: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "text": self.text}


class HistoryStore:
    """Thread-safe in-RAM conversation history, keyed by conversation id.

    Turns are only ever appended. Reads hand out copies, and reading an
    unknown id does not create an entry. No length cap is applied.
    """
    def __init__(self) -> None:
        self._lock = Lock()
        self._conversations: Dict[str, List[Turn]] = {}

    def get(self, conversation_id: str) -> List[Turn]:
        with self._lock:
            return list(self._conversations.get(conversation_id, ()))

    def append(self, conversation_id: str, role: Role, text: str) -> None:
        turn = Turn(role=Role(role), text=text)
        with self._lock:
            self._conversations.setdefault(conversation_id, []).append(turn)

    def clear(self, conversation_id: str) -> None:
        with self._lock:
            self._conversations.pop(conversation_id, None)

    def __contains__(self, conversation_id: object) -> bool:
        with self._lock:
            return conversation_id in self._conversations

    def __len__(self) -> int:
        with self._lock:
            return len(self._conversations)
