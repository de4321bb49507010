"""Repository interface for goal tree documents.

Two implementations exist: :class:`MongoGoalRepository` for production and
:class:`InMemoryGoalRepository` for tests and the no-database fallback. The
backend is chosen once when the application starts.
"""
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from enum import Enum
from typing import Optional


class Collection(str, Enum):
    """Document collections making up a goal tree."""

    GOALS = "goals"
    CATEGORIES = "goal_categories"
    TOPICS = "goal_topics"
    SUBTOPICS = "goal_subtopics"


class GoalRepository(ABC):
    """
    Storage operations used by the goal services.

    Documents are plain dicts with an ``_id`` (ObjectId) key. Queries are
    equality matches on top-level fields; results come back in insertion
    order.
    """

    @abstractmethod
    async def insert(self, collection: Collection, doc: dict) -> dict:
        """Insert a document and return it with its ``_id`` set."""

    @abstractmethod
    async def find_one(self, collection: Collection, doc_id: str) -> Optional[dict]:
        """Get a document by id, or None."""

    @abstractmethod
    async def find(self, collection: Collection, query: dict) -> list[dict]:
        """List documents matching all fields of ``query``, oldest first."""

    @abstractmethod
    async def update(
        self,
        collection: Collection,
        doc_id: str,
        fields: dict,
        expected_version: Optional[int] = None,
    ) -> Optional[dict]:
        """
        Set ``fields`` on a document and return the updated document.

        When ``expected_version`` is given the write only happens if the
        stored ``version`` still matches, and ``version`` is incremented.
        Returns None if the document is missing or the version moved on.
        """

    @abstractmethod
    async def delete_one(self, collection: Collection, doc_id: str) -> bool:
        """Delete a document by id. Returns True if something was deleted."""

    @abstractmethod
    async def delete_many(self, collection: Collection, query: dict) -> int:
        """Delete all matching documents and return how many were removed."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager:
        """
        Group writes so they commit or roll back together.

        Backends that cannot provide atomicity may return a pass-through
        context manager.
        """

    async def ping(self) -> None:
        """Check that the backend is reachable. Raises on failure."""

    async def close(self) -> None:
        """Release backend resources."""
