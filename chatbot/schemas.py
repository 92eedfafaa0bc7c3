from __future__ import annotations

from typing import Annotated, List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

MAX_PROMPT_CHARS = 1000

Prompt = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=MAX_PROMPT_CHARS)]


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: Prompt
    conversation_id: UUID = Field(..., alias="conversationID")


class ChatResponse(BaseModel):
    reply: str


class ResetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: UUID = Field(..., alias="conversationID")


class ResetResponse(BaseModel):
    message: str = "Chat history cleared"


class TurnOut(BaseModel):
    role: str
    text: str


class HistoryResponse(BaseModel):
    conversation_id: str = Field(..., serialization_alias="conversationID")
    turns: List[TurnOut]


class ErrorResponse(BaseModel):
    error: str
