"""Category router - API endpoints for goal categories."""
from fastapi import APIRouter, Depends, HTTPException, status

from prep_tracker.database import get_repository
from prep_tracker.exceptions import ProgressTrackerError
from prep_tracker.models.topic import GoalTopic, TopicCreate
from prep_tracker.routers.auth import get_current_user_id
from prep_tracker.routers.errors import to_http_exception
from prep_tracker.services.goal_service import GoalService


router = APIRouter(prefix="/categories", tags=["categories"])


@router.post(
    "/{category_id}/topics",
    response_model=GoalTopic,
    status_code=status.HTTP_201_CREATED,
)
async def add_topic(
    category_id: str,
    topic: TopicCreate,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Add a topic to a category.

    Args:
        category_id: Category ID
        topic: Topic creation data
        user_id: Current user ID (from token)
        repository: Goal repository

    Returns:
        Created topic

    Raises:
        HTTPException: If category not found (404) or name is blank (400)
    """
    service = GoalService(repository)
    try:
        return await service.add_topic(category_id, topic, user_id=user_id)
    except ProgressTrackerError as e:
        raise to_http_exception(e)


@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Delete a category with its topics and subtopics.

    Args:
        category_id: Category ID
        user_id: Current user ID (from token)
        repository: Goal repository

    Returns:
        Deletion confirmation

    Raises:
        HTTPException: If category not found (404)
    """
    service = GoalService(repository)
    try:
        deleted = await service.delete_category(category_id, user_id=user_id)
    except ProgressTrackerError as e:
        raise to_http_exception(e)

    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return {"deleted": True}
