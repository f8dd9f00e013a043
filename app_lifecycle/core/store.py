"""
Document store used by the lifecycle service.

The lifecycle logic only needs a handful of collection operations, so it talks to
this narrow interface instead of Motor directly. ``MongoDocumentStore`` is the
production implementation; tests provide an in-memory one.
"""
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClientSession, AsyncIOMotorDatabase

from app_lifecycle.log.logging import logger

Document = dict[str, Any]
Sort = list[tuple[str, int]]


class DocumentStore(ABC):
    """Abstract interface over the lifecycle collections."""

    @abstractmethod
    async def find_one(self, collection: str, filter: Document) -> Document | None:
        pass

    @abstractmethod
    async def find(
        self,
        collection: str,
        filter: Document,
        sort: Sort | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        pass

    @abstractmethod
    async def insert_one(self, collection: str, document: Document) -> Document:
        """Insert a document and return it with its ``_id`` set."""
        pass

    @abstractmethod
    async def update_one(self, collection: str, filter: Document, update: Document) -> int:
        """Apply an update to the first match. Returns the number of matched documents."""
        pass

    @abstractmethod
    async def update_many(self, collection: str, filter: Document, update: Document) -> int:
        pass

    @abstractmethod
    async def delete_many(self, collection: str, filter: Document) -> int:
        pass

    @abstractmethod
    async def count(self, collection: str, filter: Document) -> int:
        pass

    @abstractmethod
    def transaction(self):
        """
        Async context manager grouping the enclosed operations into one unit of work.

        Any exception raised inside the block aborts every write made within it.
        """
        pass


# Session of the transaction open in the current task, if any
_current_session: ContextVar[AsyncIOMotorClientSession | None] = ContextVar(
    "mongo_session", default=None
)


class MongoDocumentStore(DocumentStore):
    """DocumentStore backed by a Motor database."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database

    @property
    def _session(self) -> AsyncIOMotorClientSession | None:
        return _current_session.get()

    async def find_one(self, collection: str, filter: Document) -> Document | None:
        return await self.database[collection].find_one(filter, session=self._session)

    async def find(
        self,
        collection: str,
        filter: Document,
        sort: Sort | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        cursor = self.database[collection].find(filter, session=self._session)
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=limit)

    async def insert_one(self, collection: str, document: Document) -> Document:
        result = await self.database[collection].insert_one(document, session=self._session)
        return {**document, "_id": result.inserted_id}

    async def update_one(self, collection: str, filter: Document, update: Document) -> int:
        result = await self.database[collection].update_one(filter, update, session=self._session)
        return result.matched_count

    async def update_many(self, collection: str, filter: Document, update: Document) -> int:
        result = await self.database[collection].update_many(filter, update, session=self._session)
        return result.matched_count

    async def delete_many(self, collection: str, filter: Document) -> int:
        result = await self.database[collection].delete_many(filter, session=self._session)
        return result.deleted_count

    async def count(self, collection: str, filter: Document) -> int:
        return await self.database[collection].count_documents(filter, session=self._session)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._session is not None:
            # Already inside a unit of work; join it
            yield
            return

        async with await self.database.client.start_session() as session:
            async with session.start_transaction():
                token = _current_session.set(session)
                try:
                    yield
                except Exception:
                    logger.warning("Aborting lifecycle transaction", event_type="transaction_aborted")
                    raise
                finally:
                    _current_session.reset(token)
