"""Storage backend selection and connection lifecycle."""
from motor.motor_asyncio import AsyncIOMotorClient

from prep_tracker.config import settings
from prep_tracker.logger import get_logger
from prep_tracker.repositories.base import GoalRepository
from prep_tracker.repositories.memory import InMemoryGoalRepository
from prep_tracker.repositories.mongo import MongoGoalRepository

logger = get_logger("database")


class Database:
    """Owns the repository chosen at startup."""

    repository: GoalRepository | None = None

    async def connect(self) -> None:
        """Create the configured repository, falling back to memory if allowed."""
        if settings.storage_backend == "memory":
            self.repository = InMemoryGoalRepository()
            logger.info("Using in-memory storage")
            return

        if settings.storage_backend != "mongo":
            raise RuntimeError(f"Unknown storage backend: {settings.storage_backend}")

        client = AsyncIOMotorClient(settings.mongodb_url, tz_aware=True)
        repository = MongoGoalRepository(
            client[settings.mongodb_db_name],
            client=client,
            use_transactions=settings.mongodb_transactions,
        )

        if settings.storage_fallback_to_memory:
            try:
                await repository.ping()
            except Exception as e:
                logger.warning("MongoDB unreachable (%s), using in-memory storage", e)
                client.close()
                self.repository = InMemoryGoalRepository()
                return

        self.repository = repository
        logger.info("Connected to MongoDB: %s", settings.mongodb_db_name)

    async def disconnect(self) -> None:
        """Close the repository."""
        if self.repository:
            await self.repository.close()
            self.repository = None
            logger.info("Storage disconnected")


# Global database instance
database = Database()


async def get_repository() -> GoalRepository:
    """Dependency to get the active repository."""
    if database.repository is None:
        raise RuntimeError("Database not connected")
    return database.repository
