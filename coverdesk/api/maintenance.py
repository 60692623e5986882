"""Routes Maintenance des index / Index maintenance routes."""

from fastapi import APIRouter, Depends

from coverdesk.api.deps import get_lifecycle
from coverdesk.schemas.contract import IndexDriftRead
from coverdesk.services.lifecycle import LifecycleManager

router = APIRouter()


@router.get("/indexes", response_model=list[IndexDriftRead])
async def check_indexes(lifecycle: LifecycleManager = Depends(get_lifecycle)):
    """Écarts entre index et clés étrangères / Drift between indexes and foreign keys."""
    return await lifecycle.check_indexes()


@router.post("/indexes")
async def rebuild_indexes(lifecycle: LifecycleManager = Depends(get_lifecycle)):
    return {"corrected": await lifecycle.rebuild_indexes()}
