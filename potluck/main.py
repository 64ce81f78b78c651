"""Potluck meal planning API."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from potluck.core.config import settings
from potluck.core.database import create_db_and_tables
from potluck.core.errors import MealPlanError
from potluck.routes import feed, meals, participants, plan_items, users

# Configure logging
log_file = None
if settings.log_dir:
    log_dir = Path(settings.log_dir).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = str(log_dir / "latest.log")

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    filename=log_file,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    logger.info("Starting Potluck application")
    create_db_and_tables()
    yield
    logger.info("Potluck application shut down")


app = FastAPI(
    title=settings.app_name,
    description="Coordinate shared meals: invitations, dish slots, claims and the meal feed",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for external access
origins = (
    ["*"]
    if settings.allowed_origins == "*"
    else [o.strip() for o in settings.allowed_origins.split(",")]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(meals.router)
app.include_router(meals.photos_router)
app.include_router(participants.router)
app.include_router(plan_items.meal_router)
app.include_router(plan_items.router)
app.include_router(plan_items.recipe_router)
app.include_router(users.router)
app.include_router(feed.router)


@app.exception_handler(MealPlanError)
async def meal_plan_error_handler(request: Request, exc: MealPlanError):
    """Render classified errors as JSON with their HTTP status."""
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}


def run():
    """Serve the API with uvicorn on the configured host and port."""
    uvicorn.run(
        "potluck.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    run()
