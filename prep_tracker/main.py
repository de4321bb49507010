"""FastAPI application entry point."""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prep_tracker.config import settings
from prep_tracker.database import database
from prep_tracker.logger import setup_logging
from prep_tracker.routers import auth, categories, goals, subtopics, topics


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    setup_logging(settings.log_level)
    await database.connect()
    yield
    # Shutdown
    await database.disconnect()


app = FastAPI(
    title="Prep Tracker API",
    description="Goal, category, topic and subtopic progress tracking",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(goals.router)
app.include_router(categories.router)
app.include_router(topics.router)
app.include_router(subtopics.router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {"status": "ok", "message": "Prep Tracker API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "prep_tracker.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
