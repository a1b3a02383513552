"""Health endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Health check; reports which policy header this service emits."""
    return {
        "status": "healthy",
        "csp_header": getattr(request.app.state, "csp_header_name", None),
    }
