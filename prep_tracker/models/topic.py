"""Topic model definitions."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from prep_tracker.models.status import ProgressStatus
from prep_tracker.models.subtopic import GoalSubtopic
from prep_tracker.utils.progress import progress_percent


class TopicBase(BaseModel):
    """Base topic fields."""

    name: str
    notes: Optional[str] = None


class TopicCreate(TopicBase):
    """Topic creation model."""

    pass


class TopicUpdate(BaseModel):
    """Topic update model - status is derived, only notes are editable."""

    notes: Optional[str] = None


class GoalTopic(TopicBase):
    """Full topic model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    goal_id: str
    category_id: str
    status: ProgressStatus = ProgressStatus.PENDING
    total_subtopics: int = 0
    completed_subtopics: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}

    @computed_field
    @property
    def progress_percent(self) -> int:
        return progress_percent(self.completed_subtopics, self.total_subtopics)


class TopicNode(GoalTopic):
    """Topic with its subtopics, as returned by the goal tree read."""

    subtopics: list[GoalSubtopic] = []
    completed_subtopic_timestamps: list[datetime] = []
