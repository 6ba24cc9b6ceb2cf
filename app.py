"""
app.py: ASGI entry point for the feasibility API.

`create_app(settings)` wires the SQLite repository, the snapshot loader and
the feasibility service onto app.state and registers the feasibility router.
Tests pass their own Settings; uvicorn imports the module-level `app`.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from staffplan.controllers.feasibility_controller import router as feasibility_router
from staffplan.repository.data_repository import DataRepository
from staffplan.services.feasibility_service import FeasibilityService
from staffplan.services.snapshot_service import SnapshotService
from staffplan.utils.config import Settings, get_settings
from staffplan.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the API around one repository and one feasibility service."""
    settings = settings or get_settings()

    # --- Repository (SQLite connection factory) ---
    repository = DataRepository(settings)

    # --- Services (snapshot load is the only I/O; computation is pure) ---
    snapshot_service = SnapshotService(repository=repository, settings=settings)
    feasibility_service = FeasibilityService(
        repository=repository,
        settings=settings,
        snapshot_service=snapshot_service,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _startup(app, settings)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.include_router(feasibility_router)

    app.state.repository = repository
    app.state.snapshot_service = snapshot_service
    app.state.feasibility_service = feasibility_service

    return app


def _startup(app: FastAPI, settings: Settings) -> None:
    """Create the schema, then seed the demo tenant unless it already has staff."""
    repository: DataRepository = app.state.repository

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo tenant '%s'", settings.demo_tenant_id)
        repository.seed_demo_data()

    logger.info("Startup complete | database=%s", repository.database_path)


app = create_app()
