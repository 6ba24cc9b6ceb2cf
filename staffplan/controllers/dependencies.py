"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from staffplan.services.feasibility_service import FeasibilityService


def get_feasibility_service(request: Request) -> FeasibilityService:
    service = getattr(request.app.state, "feasibility_service", None)
    if service is None:
        repository = getattr(request.app.state, "repository", None)
        if repository is not None:
            service = FeasibilityService(repository=repository)
            request.app.state.feasibility_service = service
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Feasibility service is not initialized",
        )
    return service
