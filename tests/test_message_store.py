"""Contract shared by every message store backend."""

import pytest

from ai_chat_console.domain.errors import ValidationError
from ai_chat_console.domain.models import Role


@pytest.mark.asyncio
async def test_unknown_session_is_empty(store):
    """Listing a session that never existed returns no messages."""
    assert await store.list_messages("never-used") == []


@pytest.mark.asyncio
async def test_messages_listed_in_creation_order(store):
    """Messages come back oldest first and all of them are present."""
    contents = [f"Message {i}" for i in range(6)]
    for i, content in enumerate(contents):
        role = Role.USER if i % 2 == 0 else Role.ASSISTANT
        await store.create_message(content, role, "gpt-5", "s1")

    messages = await store.list_messages("s1")
    assert [m.content for m in messages] == contents
    assert len(messages) == len(contents)
    timestamps = [m.timestamp for m in messages]
    assert timestamps == sorted(timestamps)


@pytest.mark.asyncio
async def test_created_message_round_trip(store):
    """Stored fields survive a read and generated fields are filled in."""
    created = await store.create_message("Hello", Role.USER, "gpt-4o", "s1")
    assert created.id
    assert created.timestamp is not None

    [listed] = await store.list_messages("s1")
    assert listed.id == created.id
    assert listed.content == "Hello"
    assert listed.role == Role.USER
    assert listed.model == "gpt-4o"
    assert listed.session_id == "s1"


@pytest.mark.asyncio
async def test_ids_are_unique(store):
    """Every message gets its own identifier."""
    ids = set()
    for i in range(5):
        ids.add((await store.create_message(f"m{i}", Role.USER, "gpt-5", f"s{i % 2}")).id)
    assert len(ids) == 5


@pytest.mark.asyncio
async def test_empty_content_rejected_without_write(store):
    """Empty content fails validation and nothing is stored."""
    with pytest.raises(ValidationError):
        await store.create_message("", Role.USER, "gpt-5", "s1")
    assert await store.list_messages("s1") == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "content,role,model,session_id",
    [
        ("hi", "system", "gpt-5", "s1"),
        ("hi", Role.USER, "", "s1"),
        ("hi", Role.USER, "gpt-5", ""),
        ("hi", None, "gpt-5", "s1"),
    ],
)
async def test_missing_fields_rejected(store, content, role, model, session_id):
    """Role must be user/assistant and model/session must be present."""
    with pytest.raises(ValidationError):
        await store.create_message(content, role, model, session_id)


@pytest.mark.asyncio
async def test_clear_session_is_idempotent(store):
    """Clearing removes everything and clearing again is harmless."""
    await store.create_message("one", Role.USER, "gpt-5", "s1")
    await store.create_message("two", Role.ASSISTANT, "gpt-5", "s1")

    await store.clear_session("s1")
    assert await store.list_messages("s1") == []
    await store.clear_session("s1")
    assert await store.list_messages("s1") == []
    await store.clear_session("never-used")


@pytest.mark.asyncio
async def test_sessions_are_isolated(store):
    """Interleaved writes never leak between sessions."""
    for i in range(4):
        await store.create_message(f"a{i}", Role.USER, "gpt-5", "session-a")
        await store.create_message(f"b{i}", Role.USER, "gpt-5", "session-b")

    a = await store.list_messages("session-a")
    b = await store.list_messages("session-b")
    assert [m.content for m in a] == ["a0", "a1", "a2", "a3"]
    assert [m.content for m in b] == ["b0", "b1", "b2", "b3"]

    await store.clear_session("session-a")
    assert await store.list_messages("session-a") == []
    assert len(await store.list_messages("session-b")) == 4


@pytest.mark.asyncio
@pytest.mark.parametrize("session_id", ["a/b", "a b", "c?d#e/f"])
async def test_opaque_session_ids(store, session_id):
    """Session ids with URL-significant characters behave like any other."""
    assert await store.list_messages(session_id) == []
    await store.create_message("Hello", Role.USER, "gpt-5", session_id)
    await store.create_message("other", Role.USER, "gpt-5", "a")

    [message] = await store.list_messages(session_id)
    assert message.session_id == session_id
    assert message.content == "Hello"

    await store.clear_session(session_id)
    assert await store.list_messages(session_id) == []
    assert len(await store.list_messages("a")) == 1
