"""Report (and optionally repair) goal counters that drifted from their subtopics.

Usage:
    python scripts/check_integrity.py --mongodb-url mongodb://localhost:27017 \\
        [--user-id 42] [--repair]
"""
import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from motor.motor_asyncio import AsyncIOMotorClient

from prep_tracker.exceptions import DataIntegrityError
from prep_tracker.repositories.base import Collection
from prep_tracker.repositories.mongo import MongoGoalRepository
from prep_tracker.services.progress_service import ProgressService


async def check_integrity(mongodb_url: str, db_name: str, user_id, repair: bool) -> int:
    """Walk every goal tree. Returns the number of inconsistent goals."""
    client = AsyncIOMotorClient(mongodb_url, tz_aware=True)
    repository = MongoGoalRepository(client[db_name], client=client)
    progress = ProgressService(repository)

    query = {"user_id": user_id} if user_id is not None else {}
    goals = await repository.find(Collection.GOALS, query)
    print(f"Checking {len(goals)} goals")

    inconsistent = 0
    for goal in goals:
        goal_id = str(goal["_id"])
        problems = await progress.find_inconsistencies(goal_id)
        if not problems:
            continue

        inconsistent += 1
        print(f"\nGoal '{goal['name']}' ({goal_id}):")
        for problem in problems:
            print(f"  - {problem}")

        if repair:
            try:
                await progress.recompute_goal_tree(goal_id)
                print("  Repaired")
            except DataIntegrityError as e:
                print(f"  Could not repair: {e}")

    await repository.close()
    print(f"\n{inconsistent} inconsistent goal(s)")
    return inconsistent


def main():
    parser = argparse.ArgumentParser(description="Check goal aggregate counters")
    parser.add_argument("--mongodb-url", default="mongodb://localhost:27017")
    parser.add_argument("--db-name", default="prep_tracker")
    parser.add_argument("--user-id", type=int, default=None, help="Only check this user's goals")
    parser.add_argument("--repair", action="store_true", help="Recompute inconsistent goals")
    args = parser.parse_args()

    inconsistent = asyncio.run(
        check_integrity(args.mongodb_url, args.db_name, args.user_id, args.repair)
    )
    sys.exit(1 if inconsistent and not args.repair else 0)


if __name__ == "__main__":
    main()
