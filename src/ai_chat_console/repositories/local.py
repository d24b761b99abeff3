"""Local message store over a persistent key/value medium."""

import asyncio
import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote

import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..domain.errors import ParseError
from ..domain.models import Message, Role
from .base import sort_messages, validate_new_message

logger = structlog.get_logger()

_MESSAGE_LIST = TypeAdapter(List[Message])


class KeyValueStorage(ABC):
    """String key/value storage."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value or ``None``."""
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete the key; missing keys are ignored."""
        pass


class MemoryKeyValueStorage(KeyValueStorage):
    """Process-local storage, mostly useful for tests."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


class FileKeyValueStorage(KeyValueStorage):
    """One file per key inside ``directory``; survives process restarts."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        return self.directory / (quote(key, safe="-_.") + ".json")

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        with self._lock:
            if not path.exists():
                return None
            return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        with self._lock:
            tmp.write_text(value, encoding="utf-8")
            tmp.replace(path)

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._path(key).unlink(missing_ok=True)


def session_key(session_id: str) -> str:
    return f"messages-{session_id}"


class LocalMessageStore:
    """Message store keeping each session as one serialized JSON array.

    Stored data that cannot be decoded is treated as an empty session.
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self.storage = storage
        self._lock = asyncio.Lock()
        logger.info("local_store_initialized", storage=type(storage).__name__)

    def _read(self, session_id: str) -> Optional[str]:
        try:
            return self.storage.get_item(session_key(session_id))
        except UnicodeDecodeError as e:
            raise ParseError(str(e)) from e

    def _decode(self, raw: str) -> List[Message]:
        try:
            return _MESSAGE_LIST.validate_python(json.loads(raw))
        except (json.JSONDecodeError, PydanticValidationError, RecursionError) as e:
            raise ParseError(str(e)) from e

    def _load(self, session_id: str) -> List[Message]:
        try:
            raw = self._read(session_id)
            if not raw:
                return []
            return self._decode(raw)
        except ParseError as e:
            logger.warning("stored_messages_unreadable", session_id=session_id, error=str(e))
            return []

    def _dump(self, messages: List[Message]) -> str:
        return _MESSAGE_LIST.dump_json(messages, by_alias=True).decode("utf-8")

    async def list_messages(self, session_id: str) -> List[Message]:
        async with self._lock:
            return sort_messages(self._load(session_id))

    async def create_message(self, content: str, role: Role, model: str, session_id: str) -> Message:
        role = validate_new_message(content, role, model, session_id)
        message = Message(content=content, role=role, model=model, session_id=session_id)
        async with self._lock:
            messages = self._load(session_id)
            messages.append(message)
            self.storage.set_item(session_key(session_id), self._dump(messages))
        logger.info("message_created", session_id=session_id, role=role.value, model=model)
        return message

    async def clear_session(self, session_id: str) -> None:
        async with self._lock:
            self.storage.remove_item(session_key(session_id))
        logger.info("session_cleared", session_id=session_id)
