"""History store: per-username, append-only log of processed requests.

``InMemoryHistoryStore`` is the default and keeps everything in process
memory: entries are never evicted and vanish on restart.
``MongoHistoryStore`` keeps the same contract on top of MongoDB.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from codeassist.errors import PersistenceError
from codeassist.schemas import HistoryEntry

if TYPE_CHECKING:
    from pymongo.asynchronous.collection import AsyncCollection

logger = logging.getLogger(__name__)


class HistoryStore(ABC):
    @abstractmethod
    async def append(self, username: str, entry: HistoryEntry) -> None:
        """Add ``entry`` to the end of ``username``'s history."""

    @abstractmethod
    async def list(self, username: str) -> list[HistoryEntry]:
        """Return ``username``'s entries in append order (empty if none)."""


class InMemoryHistoryStore(HistoryStore):
    """Appends and reads never await, so each runs whole on the event loop."""

    def __init__(self) -> None:
        self._entries: dict[str, list[HistoryEntry]] = {}

    async def append(self, username: str, entry: HistoryEntry) -> None:
        self._entries.setdefault(username, []).append(entry)

    async def list(self, username: str) -> list[HistoryEntry]:
        return list(self._entries.get(username, []))

    def usernames(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return sum(len(v) for v in self._entries.values())


class MongoHistoryStore(HistoryStore):
    """One document per entry; ``_id`` order is insertion order."""

    def __init__(self, collection: AsyncCollection):
        self._collection = collection

    async def ensure_indexes(self) -> None:
        try:
            await self._collection.create_index([("username", ASCENDING), ("_id", ASCENDING)])
        except PyMongoError as e:
            raise PersistenceError(f"Could not index history collection: {e}") from e

    async def append(self, username: str, entry: HistoryEntry) -> None:
        try:
            await self._collection.insert_one({"username": username, **entry.model_dump()})
        except PyMongoError as e:
            raise PersistenceError(f"Could not store history for '{username}': {e}") from e

    async def list(self, username: str) -> list[HistoryEntry]:
        try:
            cursor = self._collection.find(
                {"username": username}, {"_id": 0, "username": 0}
            ).sort("_id", ASCENDING)
            return [HistoryEntry(**doc) async for doc in cursor]
        except PyMongoError as e:
            raise PersistenceError(f"Could not read history for '{username}': {e}") from e
