"""Error taxonomy for the chat console."""

from typing import Any, Dict, List, Optional


class ChatConsoleError(Exception):
    """Base class for all chat console errors."""


class ValidationError(ChatConsoleError):
    """A required field is missing or empty; nothing was written."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class StorageError(ChatConsoleError):
    """The persistence medium failed."""


class GatewayError(ChatConsoleError):
    """The inference call failed or timed out."""


class ParseError(ChatConsoleError):
    """Locally stored data could not be decoded."""


class TurnInProgressError(ChatConsoleError):
    """A turn is already being sent for this session."""

    def __init__(self, session_id: str):
        super().__init__(f"A message is already being sent for session {session_id}")
        self.session_id = session_id
