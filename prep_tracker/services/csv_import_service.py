"""CSV import service - builds goal trees from tabular rows."""
from datetime import datetime, timezone
from typing import Optional

from prep_tracker.exceptions import NotFoundError, ValidationError
from prep_tracker.logger import get_logger
from prep_tracker.models.goal import Goal
from prep_tracker.models.status import ProgressStatus
from prep_tracker.repositories.base import Collection, GoalRepository
from prep_tracker.services.documents import doc_to_goal
from prep_tracker.services.progress_service import ProgressService
from prep_tracker.utils.csv_rows import (
    CATEGORY,
    STATUS,
    SUBTOPIC,
    TOPIC,
    is_blank_row,
    normalize_row,
    parse_csv_text,
    parse_status_token,
    row_value,
)

logger = get_logger("csv_import")


class CSVImportService:
    """Service turning (category, topic, sub-topic, status) rows into goal trees."""

    def __init__(self, repository: GoalRepository, progress: Optional[ProgressService] = None):
        """Initialize service with a repository."""
        self.repository = repository
        self.progress = progress or ProgressService(repository)

    def _goal_name(self, goal_name: Optional[str]) -> str:
        name = (goal_name or "").strip()
        if not name:
            raise ValidationError("Goal name is required")
        return name

    async def _materialize(self, goal_id: str, rows: list[dict]) -> dict:
        """
        Create the categories, topics and subtopics described by ``rows``.

        Categories are matched by exact name within the goal and topics by
        exact name within their category; existing records are reused. Every
        row with a sub-topic value creates a new subtopic. Counters are left
        for the caller to recompute.

        Returns:
            Dict of created/skipped counts
        """
        stats = {"categories": 0, "topics": 0, "subtopics": 0, "skipped_rows": 0}

        categories = {}
        for category in await self.repository.find(Collection.CATEGORIES, {"goal_id": goal_id}):
            categories.setdefault(category["name"], category)

        topics = {}
        for topic in await self.repository.find(Collection.TOPICS, {"goal_id": goal_id}):
            topics.setdefault((topic["category_id"], topic["name"]), topic)

        for raw_row in rows:
            row = normalize_row(raw_row)
            if is_blank_row(row):
                stats["skipped_rows"] += 1
                continue

            now = datetime.now(timezone.utc)
            category_name = row_value(row, CATEGORY)
            topic_name = row_value(row, TOPIC)
            subtopic_name = row_value(row, SUBTOPIC)

            category = categories.get(category_name)
            if category is None:
                category = await self.repository.insert(Collection.CATEGORIES, {
                    "goal_id": goal_id,
                    "name": category_name,
                    "description": None,
                    "total_topics": 0,
                    "completed_topics": 0,
                    "total_subtopics": 0,
                    "completed_subtopics": 0,
                    "created_at": now,
                    "updated_at": now,
                })
                categories[category_name] = category
                stats["categories"] += 1

            category_id = str(category["_id"])
            topic = topics.get((category_id, topic_name))
            if topic is None:
                topic = await self.repository.insert(Collection.TOPICS, {
                    "goal_id": goal_id,
                    "category_id": category_id,
                    "name": topic_name,
                    "notes": None,
                    "status": ProgressStatus.PENDING.value,
                    "total_subtopics": 0,
                    "completed_subtopics": 0,
                    "created_at": now,
                    "updated_at": now,
                })
                topics[(category_id, topic_name)] = topic
                stats["topics"] += 1

            if not subtopic_name:
                continue

            status = parse_status_token(row_value(row, STATUS))
            await self.repository.insert(Collection.SUBTOPICS, {
                "goal_id": goal_id,
                "category_id": category_id,
                "topic_id": str(topic["_id"]),
                "name": subtopic_name,
                "notes": None,
                "due_date": None,
                "status": status.value,
                "completed_at": now if status == ProgressStatus.COMPLETED else None,
                "created_at": now,
                "updated_at": now,
            })
            stats["subtopics"] += 1

        return stats

    async def _discard_goal(self, goal_id: str) -> None:
        """Remove whatever part of a goal tree was written before a failure."""
        for collection in (Collection.SUBTOPICS, Collection.TOPICS, Collection.CATEGORIES):
            await self.repository.delete_many(collection, {"goal_id": goal_id})
        await self.repository.delete_one(Collection.GOALS, goal_id)

    async def create_goal_from_csv(
        self,
        user_id: int,
        goal_name: str,
        rows: list[dict],
        description: Optional[str] = None,
    ) -> Goal:
        """
        Create a new goal with its whole tree from CSV rows.

        Args:
            user_id: User ID who owns the goal
            goal_name: Goal name (trimmed)
            rows: Row dicts keyed by header (category, topics, sub-topics, status)
            description: Optional goal description

        Returns:
            Created goal with final counters

        Raises:
            ValidationError: If the goal name is blank or there are no rows
        """
        name = self._goal_name(goal_name)
        if not rows:
            raise ValidationError("CSV must have a header and at least one data row")

        goal_doc = None
        try:
            async with self.repository.transaction():
                now = datetime.now(timezone.utc)
                goal_doc = await self.repository.insert(Collection.GOALS, {
                    "user_id": user_id,
                    "name": name,
                    "description": description,
                    "total_topics": 0,
                    "completed_topics": 0,
                    "total_subtopics": 0,
                    "completed_subtopics": 0,
                    "version": 0,
                    "created_at": now,
                    "updated_at": now,
                })
                goal_id = str(goal_doc["_id"])
                stats = await self._materialize(goal_id, rows)
                goal_doc = await self.progress.recompute_goal_tree(goal_id)
        except Exception:
            logger.error("Import of goal '%s' for user %s failed", name, user_id)
            if goal_doc is not None:
                await self._discard_goal(str(goal_doc["_id"]))
            raise

        logger.info(
            "Imported goal %s for user %s: %d categories, %d topics, %d subtopics, %d blank rows skipped",
            goal_doc["_id"], user_id,
            stats["categories"], stats["topics"], stats["subtopics"], stats["skipped_rows"],
        )
        return doc_to_goal(goal_doc)

    async def create_goal_from_csv_text(
        self,
        user_id: int,
        goal_name: str,
        text: str,
        description: Optional[str] = None,
    ) -> Goal:
        """
        Parse raw CSV text and create a goal from it.

        Raises:
            ValidationError: If the goal name is blank or the file has no data rows
        """
        self._goal_name(goal_name)
        rows = parse_csv_text(text)
        return await self.create_goal_from_csv(user_id, goal_name, rows, description)

    async def import_rows(
        self,
        goal_id: str,
        rows: list[dict],
        user_id: Optional[int] = None,
    ) -> Goal:
        """
        Append CSV rows to an existing goal.

        Existing categories and topics with matching names are reused.

        Raises:
            NotFoundError: If the goal does not exist (or belongs to another user)
            ValidationError: If there are no rows
        """
        goal = await self.repository.find_one(Collection.GOALS, goal_id)
        if goal is None or (user_id is not None and goal["user_id"] != user_id):
            raise NotFoundError("Goal not found")
        if not rows:
            raise ValidationError("CSV must have a header and at least one data row")

        async with self.repository.transaction():
            stats = await self._materialize(goal_id, rows)
            goal_doc = await self.progress.recompute_goal_tree(goal_id)

        logger.info(
            "Appended to goal %s: %d categories, %d topics, %d subtopics",
            goal_id, stats["categories"], stats["topics"], stats["subtopics"],
        )
        return doc_to_goal(goal_doc)
