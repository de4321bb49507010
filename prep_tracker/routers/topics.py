"""Topic router - API endpoints for topics."""
from fastapi import APIRouter, Depends, HTTPException, status

from prep_tracker.database import get_repository
from prep_tracker.exceptions import ProgressTrackerError
from prep_tracker.models.subtopic import GoalSubtopic, SubtopicCreate
from prep_tracker.models.topic import GoalTopic, TopicUpdate
from prep_tracker.routers.auth import get_current_user_id
from prep_tracker.routers.errors import to_http_exception
from prep_tracker.services.goal_service import GoalService


router = APIRouter(prefix="/topics", tags=["topics"])


@router.post(
    "/{topic_id}/subtopics",
    response_model=GoalSubtopic,
    status_code=status.HTTP_201_CREATED,
)
async def add_subtopic(
    topic_id: str,
    subtopic: SubtopicCreate,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Add a subtopic to a topic.

    Args:
        topic_id: Topic ID
        subtopic: Subtopic creation data
        user_id: Current user ID (from token)
        repository: Goal repository

    Returns:
        Created subtopic

    Raises:
        HTTPException: If topic not found (404) or name is blank (400)
    """
    service = GoalService(repository)
    try:
        return await service.add_subtopic(topic_id, subtopic, user_id=user_id)
    except ProgressTrackerError as e:
        raise to_http_exception(e)


@router.patch("/{topic_id}", response_model=GoalTopic)
async def update_topic(
    topic_id: str,
    topic_update: TopicUpdate,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Update a topic's notes.

    Topic status follows its subtopics and cannot be set directly.

    Raises:
        HTTPException: If topic not found (404)
    """
    service = GoalService(repository)
    try:
        return await service.update_topic_notes(topic_id, topic_update, user_id=user_id)
    except ProgressTrackerError as e:
        raise to_http_exception(e)


@router.delete("/{topic_id}")
async def delete_topic(
    topic_id: str,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Delete a topic with its subtopics.

    Raises:
        HTTPException: If topic not found (404)
    """
    service = GoalService(repository)
    try:
        deleted = await service.delete_topic(topic_id, user_id=user_id)
    except ProgressTrackerError as e:
        raise to_http_exception(e)

    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Topic not found")
    return {"deleted": True}
