"""Import a CSV file as a new goal for a user.

Usage:
    python scripts/import_csv.py \\
        --file /path/to/plan.csv \\
        --goal-name "GATE 2027" \\
        --user-id 42 \\
        [--mongodb-url mongodb://localhost:27017] [--db-name prep_tracker]

The file needs a header row with Category, Topics, Sub-topics and Status
columns (any case).
"""
import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from motor.motor_asyncio import AsyncIOMotorClient

from prep_tracker.exceptions import ValidationError
from prep_tracker.repositories.mongo import MongoGoalRepository
from prep_tracker.services.csv_import_service import CSVImportService


async def import_csv(
    file_path: Path,
    goal_name: str,
    user_id: int,
    mongodb_url: str,
    db_name: str,
) -> int:
    """Run the import and print a summary. Returns a process exit code."""
    client = AsyncIOMotorClient(mongodb_url, tz_aware=True)
    repository = MongoGoalRepository(client[db_name], client=client)
    print(f"Connected to MongoDB: {db_name}")

    try:
        text = file_path.read_text(encoding="utf-8-sig")
        service = CSVImportService(repository)
        goal = await service.create_goal_from_csv_text(user_id, goal_name, text)
    except ValidationError as e:
        print(f"Invalid CSV: {e}")
        return 1
    finally:
        await repository.close()

    print(f"Created goal '{goal.name}' ({goal.id})")
    print(f"  Topics:    {goal.completed_topics}/{goal.total_topics} completed")
    print(f"  Subtopics: {goal.completed_subtopics}/{goal.total_subtopics} completed")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Import a CSV file as a goal")
    parser.add_argument("--file", required=True, type=Path, help="CSV file to import")
    parser.add_argument("--goal-name", required=True, help="Name of the new goal")
    parser.add_argument("--user-id", required=True, type=int, help="Owner user ID")
    parser.add_argument("--mongodb-url", default="mongodb://localhost:27017")
    parser.add_argument("--db-name", default="prep_tracker")
    args = parser.parse_args()

    if not args.file.exists():
        print(f"File not found: {args.file}")
        sys.exit(1)

    sys.exit(asyncio.run(import_csv(
        args.file,
        args.goal_name,
        args.user_id,
        args.mongodb_url,
        args.db_name,
    )))


if __name__ == "__main__":
    main()
