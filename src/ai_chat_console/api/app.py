"""
FastAPI Persistence Service

Stores chat transcripts per session for the networked message store. The
service never calls the inference provider itself: the console persists the
user turn through ``/api/chat``, asks the model, then persists the reply
through ``/api/ai-response``.

Key Features:
- Session-scoped message storage in a relational table
- Structured logging and Prometheus metrics
- CORS and OpenTelemetry support
"""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from prometheus_client import CollectorRegistry, Counter, generate_latest
from structlog import get_logger

from ..config import Settings, configure_logging
from ..domain.errors import StorageError, ValidationError
from ..domain.models import (
    AIResponse,
    AIResponseRequest,
    ChatRequest,
    ChatResponse,
    ClearResponse,
    MODEL_CATALOG,
    Message,
    ModelOption,
    Role,
)
from ..repositories.base import MessageStore
from ..repositories.sql import SqlMessageStore

# Registry for isolated metric collection
CUSTOM_REGISTRY = CollectorRegistry()

REQUESTS = Counter("requests_total", "Total requests by endpoint", ["path"], registry=CUSTOM_REGISTRY)
ERRORS = Counter("errors_total", "Total errors by endpoint", ["path"], registry=CUSTOM_REGISTRY)
MESSAGES_STORED = Counter("messages_stored_total", "Messages persisted by role", ["role"], registry=CUSTOM_REGISTRY)

logger = get_logger()


def get_store(request: Request) -> MessageStore:
    """Returns the message store bound to the application"""
    return request.app.state.store


def create_app(store: Optional[MessageStore] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Builds the persistence service.

    With no ``store`` the lifespan opens the SQL store named by
    ``settings.database_url`` and disposes it on shutdown.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handles app startup/shutdown and resource management"""
        owned: Optional[SqlMessageStore] = None
        if store is None:
            owned = SqlMessageStore.from_url(settings.database_url)
            await owned.init_schema()
            app.state.store = owned
        logger.info("application_startup_complete")

        yield

        if owned is not None:
            await owned.dispose()
        logger.info("application_shutdown_complete")

    app = FastAPI(
        title="AI Chat Console Persistence Service",
        description="Session-scoped chat transcript storage",
        version="0.1.0",
        lifespan=lifespan,
    )
    if store is not None:
        app.state.store = store

    # Enable cross-origin requests
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Set up request tracing
    FastAPIInstrumentor.instrument_app(app)

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Tracks requests and their failures"""
        logger.info("request_started", method=request.method, path=request.url.path)
        try:
            response = await call_next(request)
        except Exception as e:
            ERRORS.labels(path=request.url.path).inc()
            logger.error("request_failed", path=request.url.path, error=str(e))
            raise
        route = request.scope.get("route")
        path = route.path if route is not None else request.url.path
        REQUESTS.labels(path=path).inc()
        if response.status_code >= 400:
            ERRORS.labels(path=path).inc()
        return response

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("invalid_request", path=request.url.path, errors=len(exc.errors()))
        return JSONResponse(
            status_code=400,
            content={"detail": "Invalid request data", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(ValidationError)
    async def message_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        logger.warning("invalid_message", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=400, content={"detail": str(exc), "errors": exc.errors})

    @app.get("/api/messages/{session_id:path}", response_model=List[Message])
    async def get_messages(session_id: str, store: MessageStore = Depends(get_store)) -> List[Message]:
        """Gets the session's messages, oldest first"""
        try:
            return await store.list_messages(session_id)
        except StorageError as e:
            logger.error("get_messages_error", session_id=session_id, error=str(e))
            raise HTTPException(status_code=500, detail="Failed to fetch messages")

    @app.post("/api/chat", response_model=ChatResponse)
    async def chat(payload: ChatRequest, store: MessageStore = Depends(get_store)) -> ChatResponse:
        """Stores the user turn; the reply is stored separately once generated"""
        try:
            message = await store.create_message(payload.message, Role.USER, payload.model, payload.session_id)
        except StorageError as e:
            logger.error("chat_error", session_id=payload.session_id, error=str(e))
            raise HTTPException(status_code=500, detail="Failed to process chat message")
        MESSAGES_STORED.labels(role=Role.USER.value).inc()
        return ChatResponse(message=message)

    @app.post("/api/ai-response", response_model=AIResponse)
    async def ai_response(payload: AIResponseRequest, store: MessageStore = Depends(get_store)) -> AIResponse:
        """Stores an assistant turn generated by the console"""
        try:
            message = await store.create_message(
                payload.content, Role.ASSISTANT, payload.model, payload.session_id
            )
        except StorageError as e:
            logger.error("ai_response_error", session_id=payload.session_id, error=str(e))
            raise HTTPException(status_code=500, detail="Failed to store AI response")
        MESSAGES_STORED.labels(role=Role.ASSISTANT.value).inc()
        return AIResponse(message=message)

    @app.delete("/api/messages/{session_id:path}", response_model=ClearResponse)
    async def clear_messages(session_id: str, store: MessageStore = Depends(get_store)) -> ClearResponse:
        """Removes every message of the session"""
        try:
            await store.clear_session(session_id)
        except StorageError as e:
            logger.error("clear_messages_error", session_id=session_id, error=str(e))
            raise HTTPException(status_code=500, detail="Failed to clear messages")
        return ClearResponse()

    @app.get("/api/models", response_model=List[ModelOption])
    async def list_models() -> List[ModelOption]:
        """Lists the selectable models"""
        return MODEL_CATALOG

    @app.get("/metrics")
    async def metrics():
        """Provides Prometheus metrics for system monitoring"""
        return Response(generate_latest(CUSTOM_REGISTRY), media_type="text/plain")

    return app


app = create_app()
