"""
Health check route.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.models import HealthCheck
from app.store import PasteStore, get_store

router = APIRouter()


@router.get("/api/healthz", response_model=HealthCheck)
def health_check(store: PasteStore = Depends(get_store)):
    """
    Health check endpoint.
    Returns 200 with ok=true if the storage backend answers, 503 otherwise.
    """
    is_healthy = store.is_healthy()
    return JSONResponse(
        HealthCheck(ok=is_healthy).model_dump(),
        status_code=200 if is_healthy else 503,
    )
