"""Progress propagation - keeps aggregate counters equal to their children.

Subtopic status is the only authoritative value in a goal tree. After a
subtopic changes, or a topic/category gains or loses children, the owning
topic, category and goal are recomputed from fresh sibling reads and written
in child-to-parent order. The goal write is a compare-and-swap on its
``version`` field: if another request changed the goal in between, the whole
recomputation is repeated.
"""
from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional

from prep_tracker.config import settings
from prep_tracker.exceptions import ConcurrencyError, DataIntegrityError, NotFoundError
from prep_tracker.logger import get_logger
from prep_tracker.repositories.base import Collection, GoalRepository
from prep_tracker.utils.progress import (
    summarize_categories,
    summarize_subtopics,
    summarize_topics,
)

logger = get_logger("progress")


async def load_subtree(repository: GoalRepository, goal_id: str):
    """
    Load every node under a goal with one query per level.

    Returns:
        Tuple of (categories, topics_by_category, subtopics_by_topic, orphans)
        where the mappings are keyed by parent id string and ``orphans``
        lists (collection, doc) pairs whose parent is not in this goal.
    """
    categories = await repository.find(Collection.CATEGORIES, {"goal_id": goal_id})
    topics = await repository.find(Collection.TOPICS, {"goal_id": goal_id})
    subtopics = await repository.find(Collection.SUBTOPICS, {"goal_id": goal_id})

    category_ids = {str(category["_id"]) for category in categories}
    topic_ids = {str(topic["_id"]) for topic in topics}
    orphans = []

    topics_by_category = defaultdict(list)
    for topic in topics:
        if topic["category_id"] in category_ids:
            topics_by_category[topic["category_id"]].append(topic)
        else:
            orphans.append((Collection.TOPICS, topic))

    subtopics_by_topic = defaultdict(list)
    for subtopic in subtopics:
        if subtopic["topic_id"] in topic_ids:
            subtopics_by_topic[subtopic["topic_id"]].append(subtopic)
        else:
            orphans.append((Collection.SUBTOPICS, subtopic))

    return categories, topics_by_category, subtopics_by_topic, orphans


class ProgressService:
    """Service recomputing topic, category and goal aggregates."""

    def __init__(self, repository: GoalRepository, max_retries: Optional[int] = None):
        """Initialize service with a repository."""
        self.repository = repository
        if max_retries is None:
            max_retries = settings.propagation_max_retries
        self.max_retries = max(1, max_retries)

    async def _require_parent(self, collection: Collection, doc_id: str, child: str) -> dict:
        doc = await self.repository.find_one(collection, doc_id)
        if doc is None:
            logger.error("Orphaned %s: parent %s %s is missing", child, collection.value, doc_id)
            raise DataIntegrityError(
                f"{child} references missing {collection.value} record {doc_id}"
            )
        return doc

    async def _write(self, collection: Collection, doc: dict, fields: dict) -> dict:
        updated = await self.repository.update(collection, str(doc["_id"]), fields)
        if updated is None:
            logger.error("%s %s disappeared during propagation", collection.value, doc["_id"])
            raise DataIntegrityError(f"{collection.value} record {doc['_id']} disappeared during propagation")
        return updated

    async def _recompute_topic(self, topic: dict, now: datetime) -> dict:
        subtopics = await self.repository.find(
            Collection.SUBTOPICS, {"topic_id": str(topic["_id"])}
        )
        fields = summarize_subtopics(subtopics)
        fields["updated_at"] = now
        return await self._write(Collection.TOPICS, topic, fields)

    async def _recompute_category(self, category: dict, now: datetime) -> dict:
        topics = await self.repository.find(
            Collection.TOPICS, {"category_id": str(category["_id"])}
        )
        fields = summarize_topics(topics)
        fields["updated_at"] = now
        return await self._write(Collection.CATEGORIES, category, fields)

    async def _recompute_goal(self, goal: dict, now: datetime) -> Optional[dict]:
        categories = await self.repository.find(
            Collection.CATEGORIES, {"goal_id": str(goal["_id"])}
        )
        fields = summarize_categories(categories)
        fields["updated_at"] = now
        return await self.repository.update(
            Collection.GOALS,
            str(goal["_id"]),
            fields,
            expected_version=goal.get("version", 0),
        )

    async def _propagate(
        self,
        topic_id: Optional[str] = None,
        category_id: Optional[str] = None,
        goal_id: Optional[str] = None,
        child: str = "node",
    ) -> dict:
        for attempt in range(1, self.max_retries + 1):
            async with self.repository.transaction():
                topic = category = None
                parent_category_id = category_id
                parent_goal_id = goal_id

                if topic_id is not None:
                    topic = await self._require_parent(Collection.TOPICS, topic_id, child)
                    parent_category_id = topic["category_id"]
                if parent_category_id is not None:
                    category = await self._require_parent(
                        Collection.CATEGORIES, parent_category_id, f"topic {topic_id}" if topic else child
                    )
                    parent_goal_id = category["goal_id"]
                goal = await self._require_parent(
                    Collection.GOALS, parent_goal_id, f"category {parent_category_id}" if category else child
                )

                now = datetime.now(timezone.utc)
                if topic is not None:
                    await self._recompute_topic(topic, now)
                if category is not None:
                    await self._recompute_category(category, now)
                updated_goal = await self._recompute_goal(goal, now)

            if updated_goal is not None:
                return updated_goal

            logger.warning(
                "Goal %s changed during propagation, retrying (attempt %d/%d)",
                parent_goal_id,
                attempt,
                self.max_retries,
            )

        raise ConcurrencyError(
            f"Goal {parent_goal_id} kept changing; progress update abandoned after {self.max_retries} attempts"
        )

    async def propagate_from_subtopic(self, subtopic: dict) -> dict:
        """
        Recompute the topic, category and goal owning a subtopic.

        Args:
            subtopic: Subtopic document (after its change was persisted)

        Returns:
            Updated goal document

        Raises:
            DataIntegrityError: If an ancestor is missing
            ConcurrencyError: If the goal kept changing across all retries
        """
        return await self._propagate(
            topic_id=subtopic["topic_id"], child=f"subtopic {subtopic['_id']}"
        )

    async def propagate_from_topic(self, topic_id: str) -> dict:
        """Recompute a topic after its subtopic set changed, then its ancestors."""
        return await self._propagate(topic_id=topic_id, child=f"topic {topic_id}")

    async def propagate_from_category(self, category_id: str) -> dict:
        """Recompute a category after its topic set changed, then its goal."""
        return await self._propagate(category_id=category_id, child=f"category {category_id}")

    async def propagate_from_goal(self, goal_id: str) -> dict:
        """Recompute a goal after its category set changed."""
        return await self._propagate(goal_id=goal_id, child=f"goal {goal_id}")

    async def recompute_goal_tree(self, goal_id: str) -> dict:
        """
        Recompute every topic, category and the goal itself, bottom-up.

        Each node is written exactly once. Used after a CSV import and to
        repair drifted counters.

        Args:
            goal_id: Goal ID

        Returns:
            Updated goal document

        Raises:
            NotFoundError: If the goal does not exist
            DataIntegrityError: If a topic or subtopic has a missing parent
            ConcurrencyError: If the goal kept changing across all retries
        """
        for attempt in range(1, self.max_retries + 1):
            async with self.repository.transaction():
                goal = await self.repository.find_one(Collection.GOALS, goal_id)
                if goal is None:
                    raise NotFoundError("Goal not found")

                categories, topics_by_category, subtopics_by_topic, orphans = await load_subtree(
                    self.repository, goal_id
                )
                if orphans:
                    collection, doc = orphans[0]
                    logger.error(
                        "Goal %s has %d orphaned records, first: %s %s",
                        goal_id, len(orphans), collection.value, doc["_id"],
                    )
                    raise DataIntegrityError(
                        f"Goal {goal_id} has {len(orphans)} records with missing parents"
                    )

                now = datetime.now(timezone.utc)
                updated_categories = []
                for category in categories:
                    updated_topics = []
                    for topic in topics_by_category[str(category["_id"])]:
                        fields = summarize_subtopics(subtopics_by_topic[str(topic["_id"])])
                        fields["updated_at"] = now
                        updated_topics.append(await self._write(Collection.TOPICS, topic, fields))

                    fields = summarize_topics(updated_topics)
                    fields["updated_at"] = now
                    updated_categories.append(await self._write(Collection.CATEGORIES, category, fields))

                fields = summarize_categories(updated_categories)
                fields["updated_at"] = now
                updated_goal = await self.repository.update(
                    Collection.GOALS, goal_id, fields, expected_version=goal.get("version", 0)
                )

            if updated_goal is not None:
                logger.info(
                    "Recomputed goal %s: %d/%d subtopics completed",
                    goal_id,
                    updated_goal["completed_subtopics"],
                    updated_goal["total_subtopics"],
                )
                return updated_goal

            logger.warning(
                "Goal %s changed during recompute, retrying (attempt %d/%d)",
                goal_id,
                attempt,
                self.max_retries,
            )

        raise ConcurrencyError(
            f"Goal {goal_id} kept changing; recompute abandoned after {self.max_retries} attempts"
        )

    async def find_inconsistencies(self, goal_id: str) -> list[str]:
        """
        Compare stored aggregates against values re-derived from subtopics.

        Args:
            goal_id: Goal ID

        Returns:
            Human-readable problem descriptions (empty when consistent)

        Raises:
            NotFoundError: If the goal does not exist
        """
        goal = await self.repository.find_one(Collection.GOALS, goal_id)
        if goal is None:
            raise NotFoundError("Goal not found")

        categories, topics_by_category, subtopics_by_topic, orphans = await load_subtree(
            self.repository, goal_id
        )
        problems = [
            f"{collection.value} record {doc['_id']} has a missing parent"
            for collection, doc in orphans
        ]

        def compare(label: str, doc: dict, expected: dict) -> None:
            for field, value in expected.items():
                stored = doc.get(field)
                if stored != value:
                    problems.append(f"{label}: {field} is {stored}, expected {value}")

        derived_categories = []
        for category in categories:
            derived_topics = []
            for topic in topics_by_category[str(category["_id"])]:
                derived = summarize_subtopics(subtopics_by_topic[str(topic["_id"])])
                compare(f"Topic '{topic['name']}' ({topic['_id']})", topic, derived)
                derived_topics.append(derived)

            derived = summarize_topics(derived_topics)
            compare(f"Category '{category['name']}' ({category['_id']})", category, derived)
            derived_categories.append(derived)

        compare(f"Goal '{goal['name']}' ({goal['_id']})", goal, summarize_categories(derived_categories))

        return problems
