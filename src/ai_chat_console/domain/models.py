"""Domain models for the chat console."""

import threading
import time
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"


_clock_lock = threading.Lock()
_last_timestamp = datetime.min.replace(tzinfo=timezone.utc)


def utcnow() -> datetime:
    """Current UTC time, strictly increasing within this process."""
    global _last_timestamp
    with _clock_lock:
        now = datetime.now(timezone.utc)
        if now <= _last_timestamp:
            now = _last_timestamp + timedelta(microseconds=1)
        _last_timestamp = now
        return now


def new_message_id() -> str:
    return str(uuid4())


def new_session_id() -> str:
    """Session identifier derived from the wall clock, e.g. ``session-1700000000000-1a2b3c4d``."""
    return f"session-{int(time.time() * 1000)}-{uuid4().hex[:8]}"


class Message(BaseModel):
    """A single immutable turn in a conversation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, protected_namespaces=())

    id: str = Field(default_factory=new_message_id)
    content: str
    role: Role
    model: str
    timestamp: datetime = Field(default_factory=utcnow)
    session_id: str = Field(alias="sessionId")


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    message: str = Field(min_length=1)
    model: str
    session_id: str = Field(alias="sessionId")


class AIResponseRequest(BaseModel):
    """Body of ``POST /api/ai-response``."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    content: str = Field(min_length=1)
    model: str = Field(min_length=1)
    session_id: str = Field(alias="sessionId", min_length=1)


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    user_message_stored: bool = Field(default=True, alias="userMessageStored")
    message: Message


class AIResponse(BaseModel):
    message: Message


class ClearResponse(BaseModel):
    success: bool = True


class ModelOption(BaseModel):
    """Entry of the selectable model catalog."""

    value: str
    label: str


MODEL_CATALOG: List[ModelOption] = [
    ModelOption(value="gpt-5", label="ChatGPT 5"),
    ModelOption(value="gpt-4o", label="GPT-4o"),
    ModelOption(value="gpt-4o-mini", label="GPT-4o Mini"),
    ModelOption(value="claude-3-5-sonnet", label="Claude 3.5 Sonnet"),
    ModelOption(value="claude-3-5-haiku", label="Claude 3.5 Haiku"),
    ModelOption(value="deepseek-chat", label="DeepSeek Chat"),
    ModelOption(value="deepseek-reasoner", label="DeepSeek Reasoner"),
    ModelOption(value="deepseek-v3", label="DeepSeek V3.1"),
    ModelOption(value="grok-beta", label="Grok"),
    ModelOption(value="gemini-2.0-flash-exp", label="Gemini 2.0 Flash"),
    ModelOption(value="o1", label="OpenAI o1"),
    ModelOption(value="o1-mini", label="OpenAI o1 Mini"),
]

DEFAULT_MODEL = "gpt-5"
