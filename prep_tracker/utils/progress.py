"""Aggregation rules for the goal → category → topic → subtopic tree.

All functions are pure and operate on stored documents (dicts), so the
propagation engine and the integrity check derive counters the same way.
"""
from typing import Iterable

from prep_tracker.models.status import ProgressStatus


def derive_status(completed: int, total: int) -> ProgressStatus:
    """
    Classify a completed/total pair into the tri-state status.

    Args:
        completed: Number of completed children
        total: Number of children

    Returns:
        Derived status

    Examples:
        >>> derive_status(2, 2).value
        'completed'
        >>> derive_status(1, 2).value
        'start'
        >>> derive_status(0, 0).value
        'pending'
    """
    if total > 0 and completed == total:
        return ProgressStatus.COMPLETED
    if completed > 0:
        return ProgressStatus.START
    return ProgressStatus.PENDING


def progress_percent(completed: int, total: int) -> int:
    """
    Whole-number completion percentage, 0 for an empty node.

    Examples:
        >>> progress_percent(1, 3)
        33
        >>> progress_percent(0, 0)
        0
    """
    if total <= 0:
        return 0
    return round(completed / total * 100)


def summarize_subtopics(subtopics: Iterable[dict]) -> dict:
    """
    Compute a topic's counters and status from its subtopics.

    Returns:
        Dict with total_subtopics, completed_subtopics and status
    """
    total = 0
    completed = 0
    for subtopic in subtopics:
        total += 1
        if subtopic.get("status") == ProgressStatus.COMPLETED.value:
            completed += 1

    return {
        "total_subtopics": total,
        "completed_subtopics": completed,
        "status": derive_status(completed, total).value,
    }


def summarize_topics(topics: Iterable[dict]) -> dict:
    """
    Compute a category's four counters from its topics.

    A topic counts as completed when its subtopic counts derive to
    ``completed``; the stored topic status is not trusted here.
    """
    counters = {
        "total_topics": 0,
        "completed_topics": 0,
        "total_subtopics": 0,
        "completed_subtopics": 0,
    }
    for topic in topics:
        total = topic.get("total_subtopics", 0)
        completed = topic.get("completed_subtopics", 0)

        counters["total_topics"] += 1
        counters["total_subtopics"] += total
        counters["completed_subtopics"] += completed
        if derive_status(completed, total) == ProgressStatus.COMPLETED:
            counters["completed_topics"] += 1

    return counters


def summarize_categories(categories: Iterable[dict]) -> dict:
    """Compute a goal's four counters as exact sums over its categories."""
    counters = {
        "total_topics": 0,
        "completed_topics": 0,
        "total_subtopics": 0,
        "completed_subtopics": 0,
    }
    for category in categories:
        for key in counters:
            counters[key] += category.get(key, 0)

    return counters
