"""Delete every goal tree owned by a user."""
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from motor.motor_asyncio import AsyncIOMotorClient

from prep_tracker.repositories.mongo import MongoGoalRepository
from prep_tracker.services.goal_service import GoalService


async def drop_user_goals(mongodb_url: str, user_id: int, db_name: str = "prep_tracker"):
    """Delete all goals (with categories, topics and subtopics) for a user."""
    client = AsyncIOMotorClient(mongodb_url, tz_aware=True)
    repository = MongoGoalRepository(client[db_name], client=client)
    service = GoalService(repository)

    goals = await service.get_user_goals(user_id)
    for goal in goals:
        await service.delete_goal(goal.id)
        print(f"Deleted goal '{goal.name}' ({goal.id})")

    await repository.close()
    print(f"Done! Deleted {len(goals)} goal(s)")


if __name__ == "__main__":
    if len(sys.argv) not in (3, 4):
        print("Usage: python drop_user_goals.py <mongodb_url> <user_id> [db_name]")
        sys.exit(1)

    asyncio.run(drop_user_goals(sys.argv[1], int(sys.argv[2]), *sys.argv[3:]))
