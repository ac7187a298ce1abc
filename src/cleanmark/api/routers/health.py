from __future__ import annotations

from fastapi import APIRouter

from ..schemas import HealthStatus
from ... import __version__

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check", response_model=HealthStatus)
def health() -> HealthStatus:
    return HealthStatus(status="ok", version=__version__)


__all__ = ["router"]
