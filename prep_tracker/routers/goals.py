"""Goal router - API endpoints for goals and CSV imports."""
from fastapi import APIRouter, Depends, HTTPException, status
from pymongo.errors import PyMongoError

from prep_tracker.database import get_repository
from prep_tracker.exceptions import ProgressTrackerError, ValidationError
from prep_tracker.models.category import CategoryCreate, GoalCategory
from prep_tracker.models.goal import (
    CSVRows,
    Goal,
    GoalCreate,
    GoalFromCSV,
    GoalFromCSVText,
    GoalTree,
    GoalUpdate,
    IntegrityReport,
)
from prep_tracker.logger import get_logger
from prep_tracker.routers.auth import get_current_user_id
from prep_tracker.routers.errors import to_http_exception
from prep_tracker.services.csv_import_service import CSVImportService
from prep_tracker.services.documents import doc_to_goal
from prep_tracker.services.goal_service import GoalService


router = APIRouter(prefix="/goals", tags=["goals"])
logger = get_logger("api.goals")


def _import_error(error: Exception) -> HTTPException:
    """Distinguish a bad file (400) from a failed save (500)."""
    if isinstance(error, ValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid CSV: {error}",
        )
    logger.error("Could not save imported goal: %s", error)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Could not save goal: {error}",
    )


@router.get("", response_model=list[Goal])
async def list_goals(
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    List goals for the authenticated user.

    - Requires authentication
    - Ordered by creation
    """
    service = GoalService(repository)
    return await service.get_user_goals(user_id)


@router.post("", response_model=Goal, status_code=status.HTTP_201_CREATED)
async def create_goal(
    goal: GoalCreate,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Create an empty goal.

    - Requires authentication
    - Returns 400 if the name is blank
    """
    service = GoalService(repository)
    try:
        return await service.create_goal(user_id=user_id, goal_create=goal)
    except ProgressTrackerError as e:
        raise to_http_exception(e)


@router.post("/from-csv", response_model=Goal, status_code=status.HTTP_201_CREATED)
async def create_goal_from_csv(
    payload: GoalFromCSV,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Create a goal tree from rows parsed by the client.

    - Requires authentication
    - Rows are keyed by header: category, topics, sub-topics, status
    - Returns 400 for an invalid file, 500 if the goal could not be saved
    """
    service = CSVImportService(repository)
    try:
        return await service.create_goal_from_csv(
            user_id=user_id,
            goal_name=payload.goal_name,
            rows=payload.csv_data,
            description=payload.description,
        )
    except (ProgressTrackerError, PyMongoError) as e:
        raise _import_error(e)


@router.post("/from-csv-text", response_model=Goal, status_code=status.HTTP_201_CREATED)
async def create_goal_from_csv_text(
    payload: GoalFromCSVText,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Create a goal tree from raw CSV text.

    - Requires authentication
    - Quoted fields may contain commas
    - Returns 400 for an invalid file, 500 if the goal could not be saved
    """
    service = CSVImportService(repository)
    try:
        return await service.create_goal_from_csv_text(
            user_id=user_id,
            goal_name=payload.goal_name,
            text=payload.csv_text,
            description=payload.description,
        )
    except (ProgressTrackerError, PyMongoError) as e:
        raise _import_error(e)


@router.get("/{goal_id}", response_model=GoalTree)
async def get_goal(
    goal_id: str,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Get a goal with its categories, topics and subtopics.

    - Requires authentication
    - Returns 404 if goal not found
    """
    service = GoalService(repository)
    goal = await service.get_goal_with_categories(goal_id, user_id=user_id)
    if goal is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")
    return goal


@router.patch("/{goal_id}", response_model=Goal)
async def update_goal(
    goal_id: str,
    goal_update: GoalUpdate,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Rename a goal or change its description.

    - Requires authentication
    - Returns 404 if goal not found, 400 for a blank name
    """
    service = GoalService(repository)
    try:
        return await service.update_goal(goal_id, goal_update, user_id=user_id)
    except ProgressTrackerError as e:
        raise to_http_exception(e)


@router.delete("/{goal_id}")
async def delete_goal(
    goal_id: str,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Delete a goal and everything under it.

    - Requires authentication
    - Returns 404 if goal not found
    """
    service = GoalService(repository)
    if not await service.delete_goal(goal_id, user_id=user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")
    return {"deleted": True}


@router.post("/{goal_id}/csv", response_model=Goal)
async def append_csv_rows(
    goal_id: str,
    payload: CSVRows,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Append CSV rows to an existing goal.

    - Requires authentication
    - Categories and topics with matching names are reused
    - Returns 404 if goal not found, 400 if there are no rows
    """
    service = CSVImportService(repository)
    try:
        return await service.import_rows(goal_id, payload.csv_data, user_id=user_id)
    except ProgressTrackerError as e:
        raise to_http_exception(e)


@router.post("/{goal_id}/recompute", response_model=Goal)
async def recompute_goal(
    goal_id: str,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Recompute every aggregate counter of a goal from its subtopics.

    - Requires authentication
    - Returns 404 if goal not found, 500 if the tree has orphaned records
    """
    service = GoalService(repository)
    if await service.get_goal(goal_id, user_id=user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")

    try:
        goal_doc = await service.progress.recompute_goal_tree(goal_id)
    except ProgressTrackerError as e:
        raise to_http_exception(e)
    return doc_to_goal(goal_doc)


@router.get("/{goal_id}/integrity", response_model=IntegrityReport)
async def check_goal_integrity(
    goal_id: str,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Compare stored counters with a full tree walk.

    - Requires authentication
    - Returns 404 if goal not found
    """
    service = GoalService(repository)
    if await service.get_goal(goal_id, user_id=user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")

    problems = await service.progress.find_inconsistencies(goal_id)
    return IntegrityReport(goal_id=goal_id, consistent=not problems, problems=problems)


@router.post(
    "/{goal_id}/categories",
    response_model=GoalCategory,
    status_code=status.HTTP_201_CREATED,
)
async def add_category(
    goal_id: str,
    category: CategoryCreate,
    user_id: int = Depends(get_current_user_id),
    repository=Depends(get_repository),
):
    """
    Add a category to a goal.

    - Requires authentication
    - Returns 404 if goal not found, 400 for a blank name
    """
    service = GoalService(repository)
    try:
        return await service.add_category(goal_id, category, user_id=user_id)
    except ProgressTrackerError as e:
        raise to_http_exception(e)
