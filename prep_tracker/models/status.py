"""Tri-state progress status shared by topics and subtopics."""
from enum import Enum


class ProgressStatus(str, Enum):
    """Progress states (any state may move to any other state)."""

    PENDING = "pending"
    START = "start"
    COMPLETED = "completed"
