"""Tests for gateway reply resolution and the HTTP gateway."""

import asyncio
from types import SimpleNamespace

import httpx
import pytest

from ai_chat_console.services.gateway import (
    NO_RESPONSE,
    Failure,
    GeminiGateway,
    HttpGateway,
    PlainText,
    StructuredReply,
    invoke_gateway,
    reply_text,
    resolve_reply,
)


class RaisingText:
    """Mimics a provider response whose ``text`` accessor raises."""

    @property
    def text(self):
        raise ValueError("no candidates")


def test_resolve_structured_mapping():
    assert resolve_reply({"message": {"content": "Hi there"}}) == StructuredReply("Hi there")


def test_resolve_structured_object():
    raw = SimpleNamespace(message=SimpleNamespace(content="Hi there"))
    assert resolve_reply(raw) == StructuredReply("Hi there")


def test_resolve_plain_string():
    assert resolve_reply("Hi there") == PlainText("Hi there")


def test_resolve_text_attribute():
    assert resolve_reply(SimpleNamespace(text="from text")) == PlainText("from text")


def test_resolve_unusable_payloads():
    for raw in ({"foo": "bar"}, 42, None, RaisingText(), {"message": "not an object"}):
        assert reply_text(resolve_reply(raw)) == NO_RESPONSE


def test_failure_message_fallback():
    assert Failure(RuntimeError("boom")).message == "boom"
    assert Failure(RuntimeError()).message == "Failed to send message"


@pytest.mark.asyncio
async def test_invoke_gateway_captures_exceptions(scripted_gateway):
    reply = await invoke_gateway(scripted_gateway(error=ConnectionError("offline")), [], "gpt-5")
    assert isinstance(reply, Failure)
    assert reply.message == "offline"


@pytest.mark.asyncio
async def test_invoke_gateway_timeout():
    class SlowGateway:
        async def chat(self, history, model, max_tokens=1000):
            await asyncio.sleep(1)

    reply = await invoke_gateway(SlowGateway(), [], "gpt-5", timeout=0.01)
    assert isinstance(reply, Failure)


@pytest.mark.asyncio
async def test_http_gateway_posts_history():
    captured = {}

    def handler(request):
        captured["body"] = request.read()
        return httpx.Response(200, json={"message": {"content": "relayed"}})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    gateway = HttpGateway("http://relay.test/chat", client=client)
    history = [{"role": "user", "content": "Hello"}]

    raw = await gateway.chat(history, "gpt-5", max_tokens=1000)
    assert reply_text(resolve_reply(raw)) == "relayed"
    assert b'"max_tokens":1000' in captured["body"].replace(b" ", b"")
    await gateway.aclose()


@pytest.mark.asyncio
async def test_http_gateway_plain_text_and_errors():
    responses = iter([httpx.Response(200, text="just text"), httpx.Response(502, text="bad gateway")])
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: next(responses)))
    gateway = HttpGateway("http://relay.test/chat", client=client)

    assert await gateway.chat([], "gpt-5") == "just text"
    reply = await invoke_gateway(gateway, [], "gpt-5")
    assert isinstance(reply, Failure)


def test_gemini_gateway_model_mapping():
    gateway = GeminiGateway(api_key="test-key", default_model="gemini-1.5-flash")
    assert gateway._model_name("gemini-2.0-flash-exp") == "gemini-2.0-flash-exp"
    assert gateway._model_name("gpt-5") == "gemini-1.5-flash"
