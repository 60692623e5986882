"""Routes Sinistres (pair assureur) / Claim routes (insurance peer)."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coverdesk.api.deps import get_lifecycle
from coverdesk.database import get_db
from coverdesk.schemas.contract import ClaimCreate, ClaimRead, ClaimStatusUpdate
from coverdesk.services import catalog
from coverdesk.services.lifecycle import LifecycleManager

router = APIRouter()


@router.get("/", response_model=list[ClaimRead])
async def list_claims(status: str | None = None, db: AsyncSession = Depends(get_db)):
    return await catalog.list_claims(db, status)


@router.post("/", response_model=ClaimRead, status_code=201)
async def file_claim(data: ClaimCreate, lifecycle: LifecycleManager = Depends(get_lifecycle)):
    return await lifecycle.file_claim(
        data.contract_id, data.date, data.description, data.is_theft, data.reimbursable
    )


@router.post("/{claim_id}/status", response_model=ClaimRead)
async def process_claim(
    claim_id: uuid.UUID,
    data: ClaimStatusUpdate,
    lifecycle: LifecycleManager = Depends(get_lifecycle),
):
    """Traiter un sinistre / Process a claim (status transition)."""
    return await lifecycle.transition_claim_status(claim_id, data.status, data.reimbursable)
