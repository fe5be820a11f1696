from fastapi import FastAPI
from urlcompare.api.endpoints import sandbox
from urlcompare.config import settings
from contextlib import asynccontextmanager
import logging

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)  # Get logger for this module


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    The sandbox keeps its baseline catalog in memory, so it starts empty.
    """
    logger.info("Sandbox comparison service is starting up...")
    yield
    logger.info("Sandbox comparison service is shutting down...")


app = FastAPI(
    title="Comparison Sandbox API",
    description="Local stand-in for the comparison service: canned defaults, echo comparisons "
                "and an in-memory baseline catalog.",
    version="1.0.0",
    lifespan=lifespan
)

# Same paths the dashboard calls on the real service
app.include_router(sandbox.router, prefix="/api")


@app.get("/")
def health_check():
    """A simple health check endpoint."""
    return {"status": "ok"}
