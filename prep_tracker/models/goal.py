"""Goal model definitions (root of the progress tree)."""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field

from prep_tracker.models.category import CategoryNode
from prep_tracker.utils.progress import progress_percent


class GoalBase(BaseModel):
    """Base goal fields."""

    name: str
    description: Optional[str] = None


class GoalCreate(GoalBase):
    """Goal creation model."""

    pass


class GoalUpdate(BaseModel):
    """Goal update model - all fields optional."""

    name: Optional[str] = None
    description: Optional[str] = None


class GoalFromCSV(BaseModel):
    """CSV import request with rows already split by the client."""

    goal_name: str
    description: Optional[str] = None
    csv_data: list[dict[str, Any]]


class GoalFromCSVText(BaseModel):
    """CSV import request carrying the raw file text."""

    goal_name: str
    description: Optional[str] = None
    csv_text: str


class CSVRows(BaseModel):
    """Rows appended to an existing goal."""

    csv_data: list[dict[str, Any]]


class Goal(GoalBase):
    """Full goal model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: int
    total_topics: int = 0
    completed_topics: int = 0
    total_subtopics: int = 0
    completed_subtopics: int = 0
    version: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}

    @computed_field
    @property
    def progress_percent(self) -> int:
        return progress_percent(self.completed_subtopics, self.total_subtopics)


class GoalTree(Goal):
    """Goal with its nested categories, topics and subtopics."""

    categories: list[CategoryNode] = []


class IntegrityReport(BaseModel):
    """Result of comparing stored aggregates with a full tree walk."""

    goal_id: str
    consistent: bool
    problems: list[str] = []
