"""Conversion of stored documents into API models."""
from prep_tracker.models.category import GoalCategory
from prep_tracker.models.goal import Goal
from prep_tracker.models.subtopic import GoalSubtopic
from prep_tracker.models.topic import GoalTopic


def doc_to_goal(doc: dict, model=Goal, **extra):
    """Convert a goal document to ``model`` (Goal or GoalTree)."""
    return model(
        _id=str(doc["_id"]),
        user_id=doc["user_id"],
        name=doc["name"],
        description=doc.get("description"),
        total_topics=doc.get("total_topics", 0),
        completed_topics=doc.get("completed_topics", 0),
        total_subtopics=doc.get("total_subtopics", 0),
        completed_subtopics=doc.get("completed_subtopics", 0),
        version=doc.get("version", 0),
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
        **extra,
    )


def doc_to_category(doc: dict, model=GoalCategory, **extra):
    """Convert a category document to ``model`` (GoalCategory or CategoryNode)."""
    return model(
        _id=str(doc["_id"]),
        goal_id=doc["goal_id"],
        name=doc["name"],
        description=doc.get("description"),
        total_topics=doc.get("total_topics", 0),
        completed_topics=doc.get("completed_topics", 0),
        total_subtopics=doc.get("total_subtopics", 0),
        completed_subtopics=doc.get("completed_subtopics", 0),
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
        **extra,
    )


def doc_to_topic(doc: dict, model=GoalTopic, **extra):
    """Convert a topic document to ``model`` (GoalTopic or TopicNode)."""
    return model(
        _id=str(doc["_id"]),
        goal_id=doc["goal_id"],
        category_id=doc["category_id"],
        name=doc["name"],
        notes=doc.get("notes"),
        status=doc.get("status", "pending"),
        total_subtopics=doc.get("total_subtopics", 0),
        completed_subtopics=doc.get("completed_subtopics", 0),
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
        **extra,
    )


def doc_to_subtopic(doc: dict) -> GoalSubtopic:
    """
    Convert a subtopic document to GoalSubtopic.

    Due dates are stored as datetimes (BSON has no date type).
    """
    due_date = doc.get("due_date")
    return GoalSubtopic(
        _id=str(doc["_id"]),
        goal_id=doc["goal_id"],
        category_id=doc["category_id"],
        topic_id=doc["topic_id"],
        name=doc["name"],
        notes=doc.get("notes"),
        due_date=due_date.date() if hasattr(due_date, "date") else due_date,
        status=doc.get("status", "pending"),
        completed_at=doc.get("completed_at"),
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
    )
