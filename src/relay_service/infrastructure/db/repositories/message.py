from __future__ import annotations

import asyncio

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from relay_service.application.exceptions import PersistenceError
from relay_service.domain.entities.message import Message
from relay_service.infrastructure.db.mappers import message as mapper
from relay_service.infrastructure.db.models.message import MessageModel


def recent_messages_stmt(limit: int) -> Select[tuple[MessageModel]]:
    """Earliest ``limit`` messages, oldest first.

    This is a prefix of the whole history, not a sliding window over the
    latest activity.
    """
    return (
        select(MessageModel)
        .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
        .limit(limit)
    )


class SqlAlchemyMessageLog:
    """Implements application.repositories.message.MessageLog."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        timeout: float,
    ) -> None:
        self._session_factory = session_factory
        self._timeout = timeout

    async def append(self, message: Message) -> None:
        try:
            async with asyncio.timeout(self._timeout):
                async with self._session_factory() as session:
                    session.add(mapper.entity_to_model(message))
                    await session.commit()
        except TimeoutError as exc:
            raise PersistenceError(f"append timed out after {self._timeout}s") from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(f"append failed: {exc}") from exc

    async def query_recent(self, limit: int) -> list[Message]:
        try:
            async with asyncio.timeout(self._timeout):
                async with self._session_factory() as session:
                    result = await session.execute(recent_messages_stmt(limit))
                    return [mapper.model_to_entity(m) for m in result.scalars().all()]
        except TimeoutError as exc:
            raise PersistenceError(f"query timed out after {self._timeout}s") from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(f"query failed: {exc}") from exc
