"""Relational message store backing the persistence service."""

from datetime import timezone
from typing import List

import structlog
from sqlalchemy import Column, DateTime, String, Text, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from ..domain.errors import StorageError
from ..domain.models import Message, Role, new_message_id, utcnow
from .base import validate_new_message

logger = structlog.get_logger()

Base = declarative_base()


class MessageRow(Base):
    """Row of the ``messages`` table."""

    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_message_id)
    content = Column(Text, nullable=False)
    role = Column(String(20), nullable=False)
    model = Column(String(100), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    session_id = Column(Text, nullable=False, index=True)

    def to_message(self) -> Message:
        timestamp = self.timestamp
        # SQLite drops the offset on the way back
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return Message(
            id=self.id,
            content=self.content,
            role=Role(self.role),
            model=self.model,
            timestamp=timestamp,
            session_id=self.session_id,
        )


class SqlMessageStore:
    """Message store over an async SQLAlchemy engine."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self._session_maker = async_sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str) -> "SqlMessageStore":
        return cls(create_async_engine(database_url, future=True, pool_pre_ping=True))

    async def init_schema(self) -> None:
        """Create the ``messages`` table if it does not exist."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            logger.error("schema_creation_error", error=str(e))
            raise StorageError("Failed to create messages table") from e
        logger.info("sql_store_initialized", url=self.engine.url.render_as_string(hide_password=True))

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def list_messages(self, session_id: str) -> List[Message]:
        query = (
            select(MessageRow)
            .where(MessageRow.session_id == session_id)
            .order_by(MessageRow.timestamp)
        )
        try:
            async with self._session_maker() as session:
                rows = (await session.execute(query)).scalars().all()
        except SQLAlchemyError as e:
            logger.error("list_messages_error", session_id=session_id, error=str(e))
            raise StorageError("Failed to fetch messages") from e
        return [row.to_message() for row in rows]

    async def create_message(self, content: str, role: Role, model: str, session_id: str) -> Message:
        role = validate_new_message(content, role, model, session_id)
        row = MessageRow(content=content, role=role.value, model=model, session_id=session_id)
        try:
            async with self._session_maker() as session:
                session.add(row)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("create_message_error", session_id=session_id, error=str(e))
            raise StorageError("Failed to store message") from e
        logger.info("message_created", session_id=session_id, role=role.value, model=model)
        return row.to_message()

    async def clear_session(self, session_id: str) -> None:
        try:
            async with self._session_maker() as session:
                await session.execute(delete(MessageRow).where(MessageRow.session_id == session_id))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("clear_session_error", session_id=session_id, error=str(e))
            raise StorageError("Failed to clear messages") from e
        logger.info("session_cleared", session_id=session_id)
