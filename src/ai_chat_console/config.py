"""Environment-driven settings and startup wiring."""

import logging
import os
from pathlib import Path
from typing import Literal, Optional

import structlog
from pydantic import BaseModel

from .domain.models import DEFAULT_MODEL
from .repositories.base import MessageStore
from .repositories.http import HttpMessageStore
from .repositories.local import FileKeyValueStorage, LocalMessageStore
from .services.controller import ConversationController
from .services.gateway import GeminiGateway, HttpGateway, InferenceGateway


class Settings(BaseModel):
    """Runtime configuration."""

    database_url: str = "sqlite+aiosqlite:///./chat_console.db"
    storage_dir: Path = Path(".chat_console")
    backend: Literal["local", "remote"] = "local"
    service_url: str = "http://localhost:8000"
    default_model: str = DEFAULT_MODEL
    max_tokens: int = 1000
    gateway: Literal["gemini", "http"] = "gemini"
    gateway_url: Optional[str] = None
    gateway_timeout: Optional[float] = None
    gemini_api_key: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        values = {
            "database_url": os.getenv("CHAT_DATABASE_URL"),
            "storage_dir": os.getenv("CHAT_STORAGE_DIR"),
            "backend": os.getenv("CHAT_BACKEND"),
            "service_url": os.getenv("CHAT_SERVICE_URL"),
            "default_model": os.getenv("CHAT_DEFAULT_MODEL"),
            "max_tokens": os.getenv("CHAT_MAX_TOKENS"),
            "gateway": os.getenv("CHAT_GATEWAY"),
            "gateway_url": os.getenv("CHAT_GATEWAY_URL"),
            "gateway_timeout": os.getenv("CHAT_GATEWAY_TIMEOUT"),
            "gemini_api_key": os.getenv("GEMINI_API_KEY"),
            "log_level": os.getenv("CHAT_LOG_LEVEL"),
        }
        return cls(**{key: value for key, value in values.items() if value is not None})


def configure_logging(level: str = "INFO") -> None:
    """Drop structlog events below ``level``."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level.upper()))
    )


def build_store(settings: Settings) -> MessageStore:
    """Pick the message store backend named by ``settings.backend``."""
    if settings.backend == "remote":
        return HttpMessageStore(base_url=settings.service_url)
    return LocalMessageStore(FileKeyValueStorage(settings.storage_dir))


def build_gateway(settings: Settings) -> InferenceGateway:
    if settings.gateway == "http":
        if not settings.gateway_url:
            raise ValueError("CHAT_GATEWAY_URL is required for the http gateway")
        return HttpGateway(settings.gateway_url)
    if not settings.gemini_api_key:
        raise ValueError("GEMINI_API_KEY is required for the gemini gateway")
    return GeminiGateway(api_key=settings.gemini_api_key)


def build_controller(settings: Settings) -> ConversationController:
    return ConversationController(
        build_store(settings),
        build_gateway(settings),
        max_tokens=settings.max_tokens,
        timeout=settings.gateway_timeout,
    )
