"""Shared fixtures."""

from typing import Any, List

import httpx
import pytest
import pytest_asyncio

from ai_chat_console.api.app import create_app
from ai_chat_console.config import Settings
from ai_chat_console.repositories.http import HttpMessageStore
from ai_chat_console.repositories.local import (
    FileKeyValueStorage,
    LocalMessageStore,
    MemoryKeyValueStorage,
)
from ai_chat_console.repositories.sql import SqlMessageStore


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}", storage_dir=tmp_path / "kv")


@pytest_asyncio.fixture
async def sql_store(settings):
    store = SqlMessageStore.from_url(settings.database_url)
    await store.init_schema()
    yield store
    await store.dispose()


@pytest_asyncio.fixture
async def client(sql_store, settings):
    """HTTP client bound to a persistence service backed by ``sql_store``."""
    app = create_app(store=sql_store, settings=settings)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture(params=["memory", "file", "sql", "http"])
async def store(request, tmp_path, sql_store, client):
    """Every message store backend, for contract tests."""
    if request.param == "memory":
        yield LocalMessageStore(MemoryKeyValueStorage())
    elif request.param == "file":
        yield LocalMessageStore(FileKeyValueStorage(tmp_path / "kv"))
    elif request.param == "sql":
        yield sql_store
    else:
        yield HttpMessageStore(client=client)


class ScriptedGateway:
    """Gateway returning a fixed payload and recording what it was asked."""

    def __init__(self, payload: Any = None, error: Exception = None):
        self.payload = payload
        self.error = error
        self.calls: List[tuple] = []

    async def chat(self, history, model, max_tokens=1000):
        self.calls.append((history, model, max_tokens))
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def scripted_gateway():
    return ScriptedGateway
