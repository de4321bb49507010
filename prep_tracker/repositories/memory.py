"""In-memory repository used by tests and when MongoDB is unavailable."""
import copy
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Optional

from bson import ObjectId

from prep_tracker.repositories.base import Collection, GoalRepository


class InMemoryGoalRepository(GoalRepository):
    """
    Dict-backed repository.

    Every operation runs without awaiting, so each call is atomic on the
    event loop. The outermost ``transaction()`` of a task snapshots the whole
    store and restores it if the block raises; nested blocks join it.
    """

    def __init__(self):
        self._data: dict[Collection, dict[str, dict]] = {
            collection: {} for collection in Collection
        }
        self._in_transaction: ContextVar = ContextVar("memory_transaction", default=False)

    def _key(self, doc_id) -> str:
        return str(doc_id)

    def _matches(self, doc: dict, query: dict) -> bool:
        return all(doc.get(field) == value for field, value in query.items())

    async def insert(self, collection: Collection, doc: dict) -> dict:
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self._data[collection][self._key(stored["_id"])] = stored
        return copy.deepcopy(stored)

    async def find_one(self, collection: Collection, doc_id: str) -> Optional[dict]:
        doc = self._data[collection].get(self._key(doc_id))
        return copy.deepcopy(doc) if doc is not None else None

    async def find(self, collection: Collection, query: dict) -> list[dict]:
        return [
            copy.deepcopy(doc)
            for doc in self._data[collection].values()
            if self._matches(doc, query)
        ]

    async def update(
        self,
        collection: Collection,
        doc_id: str,
        fields: dict,
        expected_version: Optional[int] = None,
    ) -> Optional[dict]:
        doc = self._data[collection].get(self._key(doc_id))
        if doc is None:
            return None

        if expected_version is not None:
            if doc.get("version", 0) != expected_version:
                return None
            doc["version"] = expected_version + 1

        doc.update(copy.deepcopy(fields))
        return copy.deepcopy(doc)

    async def delete_one(self, collection: Collection, doc_id: str) -> bool:
        return self._data[collection].pop(self._key(doc_id), None) is not None

    async def delete_many(self, collection: Collection, query: dict) -> int:
        doomed = [
            key for key, doc in self._data[collection].items()
            if self._matches(doc, query)
        ]
        for key in doomed:
            del self._data[collection][key]
        return len(doomed)

    def _snapshot(self) -> dict:
        return copy.deepcopy(self._data)

    @asynccontextmanager
    async def transaction(self):
        # Nested blocks join the outer snapshot
        if self._in_transaction.get():
            yield self
            return

        snapshot = self._snapshot()
        token = self._in_transaction.set(True)
        try:
            yield self
        except BaseException:
            self._data = snapshot
            raise
        finally:
            self._in_transaction.reset(token)
