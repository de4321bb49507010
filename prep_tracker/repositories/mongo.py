"""MongoDB repository using Motor (async driver)."""
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Optional

from bson import ObjectId

from prep_tracker.repositories.base import Collection, GoalRepository


class MongoGoalRepository(GoalRepository):
    """
    Goal tree storage in four MongoDB collections.

    Foreign keys (goal_id, category_id, topic_id) are stored as id strings.
    Multi-document transactions are only used when enabled, because they
    need a replica set.
    """

    def __init__(self, db, client=None, use_transactions: bool = False):
        """Initialize repository with database connection."""
        self.db = db
        self.client = client
        self.use_transactions = use_transactions
        self._session: ContextVar = ContextVar("mongo_session", default=None)

    def _collection(self, collection: Collection):
        return self.db[collection.value]

    def _object_id(self, doc_id) -> Optional[ObjectId]:
        if isinstance(doc_id, ObjectId):
            return doc_id
        if doc_id and ObjectId.is_valid(doc_id):
            return ObjectId(doc_id)
        return None

    async def insert(self, collection: Collection, doc: dict) -> dict:
        doc = dict(doc)
        result = await self._collection(collection).insert_one(
            doc, session=self._session.get()
        )
        doc["_id"] = result.inserted_id
        return doc

    async def find_one(self, collection: Collection, doc_id: str) -> Optional[dict]:
        object_id = self._object_id(doc_id)
        if object_id is None:
            return None

        return await self._collection(collection).find_one(
            {"_id": object_id}, session=self._session.get()
        )

    async def find(self, collection: Collection, query: dict) -> list[dict]:
        cursor = self._collection(collection).find(
            query, session=self._session.get()
        ).sort([("created_at", 1), ("_id", 1)])
        return await cursor.to_list(length=None)

    async def update(
        self,
        collection: Collection,
        doc_id: str,
        fields: dict,
        expected_version: Optional[int] = None,
    ) -> Optional[dict]:
        object_id = self._object_id(doc_id)
        if object_id is None:
            return None

        query = {"_id": object_id}
        update_doc = {"$set": fields}

        if expected_version is not None:
            query["version"] = expected_version
            update_doc["$inc"] = {"version": 1}

        return await self._collection(collection).find_one_and_update(
            query,
            update_doc,
            return_document=True,
            session=self._session.get(),
        )

    async def delete_one(self, collection: Collection, doc_id: str) -> bool:
        object_id = self._object_id(doc_id)
        if object_id is None:
            return False

        result = await self._collection(collection).delete_one(
            {"_id": object_id}, session=self._session.get()
        )
        return result.deleted_count > 0

    async def delete_many(self, collection: Collection, query: dict) -> int:
        result = await self._collection(collection).delete_many(
            query, session=self._session.get()
        )
        return result.deleted_count

    @asynccontextmanager
    async def transaction(self):
        # Nested blocks join the outer transaction
        if not self.use_transactions or self.client is None or self._session.get() is not None:
            yield self
            return

        async with await self.client.start_session() as session:
            async with session.start_transaction():
                token = self._session.set(session)
                try:
                    yield self
                finally:
                    self._session.reset(token)

    async def ping(self) -> None:
        await self.db.command("ping")

    async def close(self) -> None:
        if self.client:
            self.client.close()
