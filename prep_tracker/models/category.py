"""Goal category model definitions."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from prep_tracker.models.topic import TopicNode
from prep_tracker.utils.progress import progress_percent


class CategoryBase(BaseModel):
    """Base category fields."""

    name: str
    description: Optional[str] = None


class CategoryCreate(CategoryBase):
    """Category creation model."""

    pass


class GoalCategory(CategoryBase):
    """Full category model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    goal_id: str
    total_topics: int = 0
    completed_topics: int = 0
    total_subtopics: int = 0
    completed_subtopics: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}

    @computed_field
    @property
    def progress_percent(self) -> int:
        return progress_percent(self.completed_subtopics, self.total_subtopics)


class CategoryNode(GoalCategory):
    """Category with its topics, as returned by the goal tree read."""

    topics: list[TopicNode] = []
    completed_subtopic_timestamps: list[datetime] = []
