"""Subtopic model definitions (leaf of the goal tree)."""
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from prep_tracker.models.status import ProgressStatus


class SubtopicBase(BaseModel):
    """Base subtopic fields."""

    name: str
    notes: Optional[str] = None
    due_date: Optional[date] = None


class SubtopicCreate(SubtopicBase):
    """Subtopic creation model."""

    status: ProgressStatus = ProgressStatus.PENDING


class SubtopicUpdate(BaseModel):
    """Subtopic update model - status changes go through the status endpoint."""

    name: Optional[str] = None
    notes: Optional[str] = None
    due_date: Optional[date] = None


class SubtopicStatusUpdate(BaseModel):
    """Status change request.

    ``status`` is a plain string so unknown tokens reach the service and are
    reported as a validation error instead of a schema error.
    """

    status: str
    notes: Optional[str] = None


class GoalSubtopic(SubtopicBase):
    """Full subtopic model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    goal_id: str
    category_id: str
    topic_id: str
    status: ProgressStatus = ProgressStatus.PENDING
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}
