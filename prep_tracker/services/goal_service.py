"""Goal service - goal tree reads and writes.

Every write that changes a subtopic status or the set of children under a
node triggers progress propagation before returning.
"""
from datetime import date, datetime, timezone
from typing import Optional

from prep_tracker.exceptions import (
    ConcurrencyError,
    DataIntegrityError,
    InvalidStatusError,
    NotFoundError,
    ValidationError,
)
from prep_tracker.logger import get_logger
from prep_tracker.models.category import CategoryCreate, CategoryNode, GoalCategory
from prep_tracker.models.goal import Goal, GoalCreate, GoalTree, GoalUpdate
from prep_tracker.models.status import ProgressStatus
from prep_tracker.models.subtopic import GoalSubtopic, SubtopicCreate, SubtopicUpdate
from prep_tracker.models.topic import GoalTopic, TopicCreate, TopicNode, TopicUpdate
from prep_tracker.repositories.base import Collection, GoalRepository
from prep_tracker.services.documents import (
    doc_to_category,
    doc_to_goal,
    doc_to_subtopic,
    doc_to_topic,
)
from prep_tracker.services.progress_service import ProgressService, load_subtree

logger = get_logger("goals")


def parse_status(status) -> ProgressStatus:
    """
    Validate a status value from a client.

    Only the exact tokens pending, start and completed are accepted.

    Raises:
        InvalidStatusError: For any other value
    """
    if isinstance(status, ProgressStatus):
        return status
    try:
        return ProgressStatus(status)
    except ValueError:
        raise InvalidStatusError(status)


def _required_name(name: Optional[str], label: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError(f"{label} name is required")
    return cleaned


def _as_datetime(value: Optional[date]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.combine(value, datetime.min.time(), tzinfo=timezone.utc)


class GoalService:
    """Service for handling goal tree operations."""

    def __init__(self, repository: GoalRepository, progress: Optional[ProgressService] = None):
        """Initialize service with a repository."""
        self.repository = repository
        self.progress = progress or ProgressService(repository)

    async def _owned(
        self,
        collection: Collection,
        doc_id: str,
        user_id: Optional[int] = None,
    ) -> Optional[dict]:
        """
        Fetch a document, hiding it when its goal belongs to another user.

        Returns:
            The document, or None if missing or not owned by ``user_id``
        """
        doc = await self.repository.find_one(collection, doc_id)
        if doc is None or user_id is None:
            return doc

        if collection == Collection.GOALS:
            goal = doc
        else:
            goal = await self.repository.find_one(Collection.GOALS, doc["goal_id"])

        if goal is None or goal["user_id"] != user_id:
            return None
        return doc

    async def create_goal(self, user_id: int, goal_create: GoalCreate) -> Goal:
        """
        Create an empty goal.

        Args:
            user_id: User ID who owns the goal
            goal_create: Goal creation data

        Returns:
            Created goal

        Raises:
            ValidationError: If the name is blank
        """
        now = datetime.now(timezone.utc)
        goal_doc = await self.repository.insert(Collection.GOALS, {
            "user_id": user_id,
            "name": _required_name(goal_create.name, "Goal"),
            "description": goal_create.description,
            "total_topics": 0,
            "completed_topics": 0,
            "total_subtopics": 0,
            "completed_subtopics": 0,
            "version": 0,
            "created_at": now,
            "updated_at": now,
        })

        logger.info("Created goal %s for user %s", goal_doc["_id"], user_id)
        return doc_to_goal(goal_doc)

    async def get_user_goals(self, user_id: int) -> list[Goal]:
        """List a user's goals, oldest first."""
        goal_docs = await self.repository.find(Collection.GOALS, {"user_id": user_id})
        return [doc_to_goal(doc) for doc in goal_docs]

    async def get_goal(self, goal_id: str, user_id: Optional[int] = None) -> Optional[Goal]:
        """Get a goal without its children, or None if not found."""
        goal_doc = await self._owned(Collection.GOALS, goal_id, user_id)
        return doc_to_goal(goal_doc) if goal_doc else None

    async def get_goal_with_categories(
        self,
        goal_id: str,
        user_id: Optional[int] = None,
    ) -> Optional[GoalTree]:
        """
        Get a goal with its categories, topics and subtopics.

        Every level is ordered by creation. Categories and topics also carry
        the completion timestamps of their completed subtopics.

        Args:
            goal_id: Goal ID
            user_id: Optional owner; goals of other users read as missing

        Returns:
            GoalTree, or None if the goal does not exist
        """
        goal_doc = await self._owned(Collection.GOALS, goal_id, user_id)
        if goal_doc is None:
            return None

        categories, topics_by_category, subtopics_by_topic, _ = await load_subtree(
            self.repository, str(goal_doc["_id"])
        )

        category_nodes = []
        for category in categories:
            topic_nodes = []
            for topic in topics_by_category[str(category["_id"])]:
                subtopics = [doc_to_subtopic(doc) for doc in subtopics_by_topic[str(topic["_id"])]]
                timestamps = sorted(
                    subtopic.completed_at
                    for subtopic in subtopics
                    if subtopic.status == ProgressStatus.COMPLETED and subtopic.completed_at
                )
                topic_nodes.append(doc_to_topic(
                    topic,
                    TopicNode,
                    subtopics=subtopics,
                    completed_subtopic_timestamps=timestamps,
                ))

            category_nodes.append(doc_to_category(
                category,
                CategoryNode,
                topics=topic_nodes,
                completed_subtopic_timestamps=sorted(
                    ts for node in topic_nodes for ts in node.completed_subtopic_timestamps
                ),
            ))

        return doc_to_goal(goal_doc, GoalTree, categories=category_nodes)

    async def update_goal(
        self,
        goal_id: str,
        goal_update: GoalUpdate,
        user_id: Optional[int] = None,
    ) -> Goal:
        """
        Rename a goal or change its description.

        Raises:
            NotFoundError: If the goal does not exist
            ValidationError: If the new name is blank
            ConcurrencyError: If the goal changed while updating
        """
        existing = await self._owned(Collection.GOALS, goal_id, user_id)
        if not existing:
            raise NotFoundError("Goal not found")

        update_doc = {"updated_at": datetime.now(timezone.utc)}
        if goal_update.name is not None:
            update_doc["name"] = _required_name(goal_update.name, "Goal")
        if goal_update.description is not None:
            update_doc["description"] = goal_update.description

        updated_doc = await self.repository.update(
            Collection.GOALS,
            goal_id,
            update_doc,
            expected_version=existing.get("version", 0),
        )
        if updated_doc is None:
            raise ConcurrencyError("Goal was modified by another request")

        return doc_to_goal(updated_doc)

    async def delete_goal(self, goal_id: str, user_id: Optional[int] = None) -> bool:
        """
        Delete a goal and its whole subtree.

        Returns:
            True if the goal existed and was deleted
        """
        existing = await self._owned(Collection.GOALS, goal_id, user_id)
        if not existing:
            return False

        async with self.repository.transaction():
            subtopics = await self.repository.delete_many(Collection.SUBTOPICS, {"goal_id": goal_id})
            topics = await self.repository.delete_many(Collection.TOPICS, {"goal_id": goal_id})
            categories = await self.repository.delete_many(Collection.CATEGORIES, {"goal_id": goal_id})
            deleted = await self.repository.delete_one(Collection.GOALS, goal_id)

        logger.info(
            "Deleted goal %s (%d categories, %d topics, %d subtopics)",
            goal_id, categories, topics, subtopics,
        )
        return deleted

    async def add_category(
        self,
        goal_id: str,
        category_create: CategoryCreate,
        user_id: Optional[int] = None,
    ) -> GoalCategory:
        """
        Add an empty category to a goal.

        Raises:
            NotFoundError: If the goal does not exist
            ValidationError: If the name is blank
        """
        goal = await self._owned(Collection.GOALS, goal_id, user_id)
        if not goal:
            raise NotFoundError("Goal not found")

        now = datetime.now(timezone.utc)
        async with self.repository.transaction():
            category_doc = await self.repository.insert(Collection.CATEGORIES, {
                "goal_id": goal_id,
                "name": _required_name(category_create.name, "Category"),
                "description": category_create.description,
                "total_topics": 0,
                "completed_topics": 0,
                "total_subtopics": 0,
                "completed_subtopics": 0,
                "created_at": now,
                "updated_at": now,
            })
            await self.progress.propagate_from_goal(goal_id)

        return doc_to_category(category_doc)

    async def add_topic(
        self,
        category_id: str,
        topic_create: TopicCreate,
        user_id: Optional[int] = None,
    ) -> GoalTopic:
        """
        Add an empty topic to a category.

        Raises:
            NotFoundError: If the category does not exist
            ValidationError: If the name is blank
        """
        category = await self._owned(Collection.CATEGORIES, category_id, user_id)
        if not category:
            raise NotFoundError("Category not found")

        now = datetime.now(timezone.utc)
        async with self.repository.transaction():
            topic_doc = await self.repository.insert(Collection.TOPICS, {
                "goal_id": category["goal_id"],
                "category_id": category_id,
                "name": _required_name(topic_create.name, "Topic"),
                "notes": topic_create.notes,
                "status": ProgressStatus.PENDING.value,
                "total_subtopics": 0,
                "completed_subtopics": 0,
                "created_at": now,
                "updated_at": now,
            })
            await self.progress.propagate_from_category(category_id)

        return doc_to_topic(topic_doc)

    async def add_subtopic(
        self,
        topic_id: str,
        subtopic_create: SubtopicCreate,
        user_id: Optional[int] = None,
    ) -> GoalSubtopic:
        """
        Add a subtopic to a topic and propagate its status.

        Raises:
            NotFoundError: If the topic does not exist
            ValidationError: If the name is blank
        """
        topic = await self._owned(Collection.TOPICS, topic_id, user_id)
        if not topic:
            raise NotFoundError("Topic not found")

        now = datetime.now(timezone.utc)
        status = parse_status(subtopic_create.status)
        async with self.repository.transaction():
            subtopic_doc = await self.repository.insert(Collection.SUBTOPICS, {
                "goal_id": topic["goal_id"],
                "category_id": topic["category_id"],
                "topic_id": topic_id,
                "name": _required_name(subtopic_create.name, "Subtopic"),
                "notes": subtopic_create.notes,
                "due_date": _as_datetime(subtopic_create.due_date),
                "status": status.value,
                "completed_at": now if status == ProgressStatus.COMPLETED else None,
                "created_at": now,
                "updated_at": now,
            })
            await self.progress.propagate_from_subtopic(subtopic_doc)

        return doc_to_subtopic(subtopic_doc)

    async def update_topic_notes(
        self,
        topic_id: str,
        topic_update: TopicUpdate,
        user_id: Optional[int] = None,
    ) -> GoalTopic:
        """
        Update a topic's notes. Topic status is derived and cannot be set.

        Raises:
            NotFoundError: If the topic does not exist
        """
        topic = await self._owned(Collection.TOPICS, topic_id, user_id)
        if not topic:
            raise NotFoundError("Topic not found")

        update_doc = {"updated_at": datetime.now(timezone.utc)}
        if topic_update.notes is not None:
            update_doc["notes"] = topic_update.notes

        updated_doc = await self.repository.update(Collection.TOPICS, topic_id, update_doc)
        if updated_doc is None:
            raise NotFoundError("Topic not found")
        return doc_to_topic(updated_doc)

    async def update_subtopic(
        self,
        subtopic_id: str,
        subtopic_update: SubtopicUpdate,
        user_id: Optional[int] = None,
    ) -> GoalSubtopic:
        """
        Update a subtopic's name, notes or due date.

        Raises:
            NotFoundError: If the subtopic does not exist
            ValidationError: If the new name is blank
        """
        subtopic = await self._owned(Collection.SUBTOPICS, subtopic_id, user_id)
        if not subtopic:
            raise NotFoundError("Subtopic not found")

        update_doc = {"updated_at": datetime.now(timezone.utc)}
        if subtopic_update.name is not None:
            update_doc["name"] = _required_name(subtopic_update.name, "Subtopic")
        if subtopic_update.notes is not None:
            update_doc["notes"] = subtopic_update.notes
        if subtopic_update.due_date is not None:
            update_doc["due_date"] = _as_datetime(subtopic_update.due_date)

        updated_doc = await self.repository.update(Collection.SUBTOPICS, subtopic_id, update_doc)
        if updated_doc is None:
            raise NotFoundError("Subtopic not found")
        return doc_to_subtopic(updated_doc)

    async def update_subtopic_status(
        self,
        subtopic_id: str,
        status,
        notes: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> GoalSubtopic:
        """
        Set a subtopic's status and propagate it to its ancestors.

        Any status may follow any other; there is no forced ordering.

        Args:
            subtopic_id: Subtopic ID
            status: One of pending, start, completed
            notes: Optional notes to store with the change
            user_id: Optional owner check

        Returns:
            Updated subtopic

        Raises:
            InvalidStatusError: If status is not a recognized token
            NotFoundError: If the subtopic does not exist
            DataIntegrityError: If an ancestor record is missing
        """
        new_status = parse_status(status)

        subtopic = await self._owned(Collection.SUBTOPICS, subtopic_id, user_id)
        if not subtopic:
            raise NotFoundError("Subtopic not found")

        now = datetime.now(timezone.utc)
        update_doc = {"status": new_status.value, "updated_at": now}
        if new_status == ProgressStatus.COMPLETED:
            if subtopic.get("status") != ProgressStatus.COMPLETED.value or not subtopic.get("completed_at"):
                update_doc["completed_at"] = now
        else:
            update_doc["completed_at"] = None
        if notes is not None:
            update_doc["notes"] = notes

        async with self.repository.transaction():
            updated_doc = await self.repository.update(Collection.SUBTOPICS, subtopic_id, update_doc)
            if updated_doc is None:
                raise NotFoundError("Subtopic not found")
            await self.progress.propagate_from_subtopic(updated_doc)

        logger.debug("Subtopic %s set to %s", subtopic_id, new_status.value)
        return doc_to_subtopic(updated_doc)

    async def _propagate_after_delete(self, propagate, parent_id: str, deleted: str) -> None:
        try:
            await propagate(parent_id)
        except DataIntegrityError:
            # The deleted node was already orphaned; nothing left to aggregate.
            logger.warning("Deleted %s but its ancestors could not be recomputed", deleted)

    async def delete_category(self, category_id: str, user_id: Optional[int] = None) -> bool:
        """Delete a category with its topics and subtopics, then update the goal."""
        category = await self._owned(Collection.CATEGORIES, category_id, user_id)
        if not category:
            return False

        async with self.repository.transaction():
            await self.repository.delete_many(Collection.SUBTOPICS, {"category_id": category_id})
            await self.repository.delete_many(Collection.TOPICS, {"category_id": category_id})
            deleted = await self.repository.delete_one(Collection.CATEGORIES, category_id)
            await self._propagate_after_delete(
                self.progress.propagate_from_goal, category["goal_id"], f"category {category_id}"
            )

        return deleted

    async def delete_topic(self, topic_id: str, user_id: Optional[int] = None) -> bool:
        """Delete a topic with its subtopics, then update its category and goal."""
        topic = await self._owned(Collection.TOPICS, topic_id, user_id)
        if not topic:
            return False

        async with self.repository.transaction():
            await self.repository.delete_many(Collection.SUBTOPICS, {"topic_id": topic_id})
            deleted = await self.repository.delete_one(Collection.TOPICS, topic_id)
            await self._propagate_after_delete(
                self.progress.propagate_from_category, topic["category_id"], f"topic {topic_id}"
            )

        return deleted

    async def delete_subtopic(self, subtopic_id: str, user_id: Optional[int] = None) -> bool:
        """Delete a subtopic, then update its topic, category and goal."""
        subtopic = await self._owned(Collection.SUBTOPICS, subtopic_id, user_id)
        if not subtopic:
            return False

        async with self.repository.transaction():
            deleted = await self.repository.delete_one(Collection.SUBTOPICS, subtopic_id)
            await self._propagate_after_delete(
                self.progress.propagate_from_topic, subtopic["topic_id"], f"subtopic {subtopic_id}"
            )

        return deleted
