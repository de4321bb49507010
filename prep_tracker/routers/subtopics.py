"""Subtopic router - status changes and subtopic maintenance."""
from fastapi import APIRouter, Depends, HTTPException, status

from prep_tracker.database import get_repository
from prep_tracker.exceptions import ProgressTrackerError
from prep_tracker.models.subtopic import GoalSubtopic, SubtopicStatusUpdate, SubtopicUpdate
from prep_tracker.routers.auth import get_current_user_id
from prep_tracker.routers.errors import to_http_exception
from prep_tracker.services.goal_service import GoalService


router = APIRouter(prefix="/subtopics", tags=["subtopics"])


@router.patch("/{subtopic_id}/status", response_model=GoalSubtopic)
async def update_subtopic_status(
    subtopic_id: str,
    status_update: SubtopicStatusUpdate,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Set a subtopic's status and update its topic, category and goal.

    Args:
        subtopic_id: Subtopic ID
        status_update: New status (pending, start, completed) and optional notes
        user_id: Current user ID (from token)
        repository: Goal repository

    Returns:
        Updated subtopic

    Raises:
        HTTPException: Invalid status (400), subtopic not found (404),
            missing ancestor record (500)
    """
    service = GoalService(repository)
    try:
        return await service.update_subtopic_status(
            subtopic_id,
            status_update.status,
            notes=status_update.notes,
            user_id=user_id,
        )
    except ProgressTrackerError as e:
        raise to_http_exception(e)


@router.patch("/{subtopic_id}", response_model=GoalSubtopic)
async def update_subtopic(
    subtopic_id: str,
    subtopic_update: SubtopicUpdate,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Update a subtopic's name, notes or due date.

    Raises:
        HTTPException: Subtopic not found (404) or blank name (400)
    """
    service = GoalService(repository)
    try:
        return await service.update_subtopic(subtopic_id, subtopic_update, user_id=user_id)
    except ProgressTrackerError as e:
        raise to_http_exception(e)


@router.delete("/{subtopic_id}")
async def delete_subtopic(
    subtopic_id: str,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Delete a subtopic and update its ancestors.

    Raises:
        HTTPException: Subtopic not found (404)
    """
    service = GoalService(repository)
    try:
        deleted = await service.delete_subtopic(subtopic_id, user_id=user_id)
    except ProgressTrackerError as e:
        raise to_http_exception(e)

    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subtopic not found")
    return {"deleted": True}
