"""Conversation controller: one user turn in, one assistant turn out."""

from enum import Enum
from typing import Dict, Optional

import structlog

from ..domain.errors import GatewayError, TurnInProgressError, ValidationError
from ..domain.models import Message, Role
from ..repositories.base import MessageStore
from .gateway import Failure, InferenceGateway, invoke_gateway, reply_text

logger = structlog.get_logger()


class TurnState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ConversationController:
    """Orchestrates turn-taking between a message store and an inference gateway.

    At most one turn per session is in flight; sessions are independent of
    each other. The store is a strategy: any ``MessageStore`` works.
    """

    def __init__(
        self,
        store: MessageStore,
        gateway: InferenceGateway,
        max_tokens: int = 1000,
        timeout: Optional[float] = None,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._states: Dict[str, TurnState] = {}

    def state(self, session_id: str) -> TurnState:
        return self._states.get(session_id, TurnState.IDLE)

    def is_sending(self, session_id: str) -> bool:
        return self.state(session_id) is TurnState.SENDING

    def _transition(self, session_id: str, state: TurnState) -> None:
        if state is TurnState.IDLE:
            self._states.pop(session_id, None)
        else:
            self._states[session_id] = state
        logger.debug("turn_state_changed", session_id=session_id, state=state.value)

    async def submit(self, text: str, model: str, session_id: str) -> Message:
        """Send ``text`` and return the stored assistant reply.

        The user message is persisted before the gateway is called and stays
        persisted if the call fails, in which case ``GatewayError`` is raised.
        """
        content = (text or "").strip()
        if not content:
            raise ValidationError("Message must not be empty", [{"loc": ["message"], "msg": "empty message"}])
        if self.is_sending(session_id):
            raise TurnInProgressError(session_id)

        self._transition(session_id, TurnState.SENDING)
        final_state = TurnState.FAILED
        try:
            await self.store.create_message(content, Role.USER, model, session_id)
            history = [
                {"role": m.role.value, "content": m.content}
                for m in await self.store.list_messages(session_id)
            ]

            reply = await invoke_gateway(
                self.gateway, history, model, max_tokens=self.max_tokens, timeout=self.timeout
            )
            if isinstance(reply, Failure):
                logger.warning("turn_failed", session_id=session_id, model=model, error=reply.message)
                raise GatewayError(reply.message) from reply.error

            assistant = await self.store.create_message(reply_text(reply), Role.ASSISTANT, model, session_id)
            final_state = TurnState.SUCCEEDED
            logger.info(
                "turn_completed",
                session_id=session_id,
                model=model,
                history_length=len(history),
                reply_length=len(assistant.content),
            )
            return assistant
        finally:
            self._transition(session_id, final_state)
            self._transition(session_id, TurnState.IDLE)

    async def clear(self, session_id: str) -> None:
        """Clear the session's transcript. An in-flight turn is not cancelled."""
        if self.is_sending(session_id):
            logger.info("clear_during_send", session_id=session_id)
        await self.store.clear_session(session_id)
