"""Pytest configuration and fixtures."""
import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("STORAGE_BACKEND", "memory")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from prep_tracker.main import app
from prep_tracker.database import database
from prep_tracker.repositories.memory import InMemoryGoalRepository
from prep_tracker.utils.auth import create_access_token


SAMPLE_ROWS = [
    {"category": "Math", "topics": "Algebra", "sub-topics": "Linear Eq", "status": "completed"},
    {"category": "Math", "topics": "Algebra", "sub-topics": "Quadratics", "status": "pending"},
    {"category": "Math", "topics": "Calculus", "sub-topics": "Limits", "status": "Completed"},
    {"category": "Physics", "topics": "Mechanics", "sub-topics": "Kinematics", "status": "In Progress"},
]


@pytest.fixture
def repository():
    """Fresh in-memory repository."""
    return InMemoryGoalRepository()


@pytest.fixture
def sample_rows():
    """Rows for a two-category goal: 4 subtopics, 2 completed."""
    return [dict(row) for row in SAMPLE_ROWS]


@pytest.fixture
def auth_headers():
    """Bearer headers for user 1."""
    return {"Authorization": f"Bearer {create_access_token(user_id=1)}"}


@pytest.fixture
def other_user_headers():
    """Bearer headers for user 2."""
    return {"Authorization": f"Bearer {create_access_token(user_id=2)}"}


@pytest_asyncio.fixture
async def app_client(repository):
    """
    Create a test client backed by an in-memory repository.

    The repository fixture is shared, so tests can inspect stored documents
    directly.
    """
    original_repository = database.repository
    database.repository = repository

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    database.repository = original_repository
