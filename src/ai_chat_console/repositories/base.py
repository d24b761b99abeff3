"""Message store interface shared by every backend."""

from typing import Any, Dict, List, Protocol, runtime_checkable

from ..domain.errors import ValidationError
from ..domain.models import Message, Role


@runtime_checkable
class MessageStore(Protocol):
    """Session-scoped message storage.

    Implementations are interchangeable: the conversation controller only
    relies on these three coroutines.
    """

    async def list_messages(self, session_id: str) -> List[Message]:
        """Return the session's messages, oldest first. Unknown sessions yield ``[]``."""
        ...

    async def create_message(self, content: str, role: Role, model: str, session_id: str) -> Message:
        """Validate, stamp and append a message, returning the stored copy."""
        ...

    async def clear_session(self, session_id: str) -> None:
        """Remove every message of the session. Idempotent."""
        ...


def validate_new_message(content: Any, role: Any, model: Any, session_id: Any) -> Role:
    """Check the fields of a message about to be created.

    Returns the normalized role. Raises ``ValidationError`` listing every
    offending field.
    """
    errors: List[Dict[str, Any]] = []

    for field, value in (("content", content), ("model", model), ("sessionId", session_id)):
        if not isinstance(value, str) or not value:
            errors.append({"loc": [field], "msg": f"{field} must be a non-empty string"})

    try:
        normalized = Role(role)
    except (ValueError, TypeError):
        errors.append({"loc": ["role"], "msg": "role must be 'user' or 'assistant'"})
        normalized = None

    if errors:
        raise ValidationError("Invalid message: " + "; ".join(e["msg"] for e in errors), errors)
    return normalized


def sort_messages(messages: List[Message]) -> List[Message]:
    """Order by timestamp; ``sorted`` is stable so ties keep insertion order."""
    return sorted(messages, key=lambda m: m.timestamp)
