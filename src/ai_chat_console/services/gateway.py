"""Inference gateway boundary.

A gateway takes the role/content history and a model identifier and returns
whatever the provider hands back. ``invoke_gateway`` resolves that payload
right away into one of three shapes, so callers never see provider objects:

- ``StructuredReply``: a payload carrying ``message.content``
- ``PlainText``: a string, or an object exposing ``text``
- ``Failure``: the call raised or timed out
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union

import google.generativeai as genai
import httpx
import structlog

logger = structlog.get_logger()

NO_RESPONSE = "No response received"

History = List[Dict[str, str]]


class InferenceGateway(Protocol):
    async def chat(self, history: History, model: str, max_tokens: int = 1000) -> Any:
        ...


@dataclass(frozen=True)
class StructuredReply:
    content: str


@dataclass(frozen=True)
class PlainText:
    text: str


@dataclass(frozen=True)
class Failure:
    error: BaseException

    @property
    def message(self) -> str:
        return str(self.error) or "Failed to send message"


Reply = Union[StructuredReply, PlainText, Failure]


def _structured_content(raw: Any) -> Optional[str]:
    message = raw.get("message") if isinstance(raw, Mapping) else getattr(raw, "message", None)
    content = message.get("content") if isinstance(message, Mapping) else getattr(message, "content", None)
    if isinstance(content, str) and content:
        return content
    return None


def _plain_text(raw: Any) -> str:
    if isinstance(raw, str):
        return raw
    try:
        text = getattr(raw, "text", None)
    except ValueError:
        # Gemini responses without candidates raise on .text
        return ""
    return text if isinstance(text, str) else ""


def resolve_reply(raw: Any) -> Reply:
    """Classify a successful gateway payload."""
    content = _structured_content(raw)
    if content is not None:
        return StructuredReply(content)
    return PlainText(_plain_text(raw))


def reply_text(reply: Reply) -> str:
    """Text to store for a successful reply, falling back to ``NO_RESPONSE``."""
    if isinstance(reply, StructuredReply):
        return reply.content
    if isinstance(reply, PlainText) and reply.text:
        return reply.text
    return NO_RESPONSE


async def invoke_gateway(
    gateway: InferenceGateway,
    history: History,
    model: str,
    max_tokens: int = 1000,
    timeout: Optional[float] = None,
) -> Reply:
    """Call the gateway once and resolve the outcome. Never raises."""
    try:
        raw = await asyncio.wait_for(gateway.chat(history, model, max_tokens=max_tokens), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("gateway_timeout", model=model, timeout=timeout)
        return Failure(TimeoutError(f"No reply from {model} within {timeout} seconds"))
    except Exception as e:
        logger.error("gateway_call_failed", model=model, error=str(e))
        return Failure(e)
    return resolve_reply(raw)


class GeminiGateway:
    """Gateway backed by Google's Gemini models."""

    def __init__(self, api_key: str, default_model: str = "gemini-2.0-flash-exp") -> None:
        genai.configure(api_key=api_key)
        self.default_model = default_model
        logger.info("gemini_gateway_init", default_model=default_model)

    def _model_name(self, model: str) -> str:
        # Non-Gemini catalog entries are served by the default Gemini model
        return model if model.startswith("gemini") else self.default_model

    async def chat(self, history: History, model: str, max_tokens: int = 1000) -> Any:
        contents = [
            {"role": "model" if entry["role"] == "assistant" else "user", "parts": [entry["content"]]}
            for entry in history
        ]
        generative_model = genai.GenerativeModel(self._model_name(model))
        return await generative_model.generate_content_async(
            contents,
            generation_config=genai.GenerationConfig(max_output_tokens=max_tokens),
        )


class HttpGateway:
    """Gateway posting ``{messages, model, max_tokens}`` to a relay endpoint.

    JSON replies are returned as decoded objects, anything else as text.
    """

    def __init__(self, url: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 60.0) -> None:
        self.url = url
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def chat(self, history: History, model: str, max_tokens: int = 1000) -> Any:
        response = await self.client.post(
            self.url, json={"messages": history, "model": model, "max_tokens": max_tokens}
        )
        response.raise_for_status()
        if response.headers.get("content-type", "").startswith("application/json"):
            return response.json()
        return response.text

    async def aclose(self) -> None:
        await self.client.aclose()
