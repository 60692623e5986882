"""Routes Vols (pair police) / Theft claim routes (police peer)."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coverdesk.api.deps import get_lifecycle
from coverdesk.database import get_db
from coverdesk.schemas.contract import ClaimRead, PoliceReport, TheftClaimRead
from coverdesk.services import catalog
from coverdesk.services.lifecycle import LifecycleManager

router = APIRouter()


@router.get("/", response_model=list[TheftClaimRead])
async def list_theft_claims(db: AsyncSession = Depends(get_db)):
    return await catalog.list_theft_claims(db)


@router.post("/{claim_id}/report", response_model=ClaimRead)
async def process_theft_claim(
    claim_id: uuid.UUID,
    data: PoliceReport,
    lifecycle: LifecycleManager = Depends(get_lifecycle),
):
    """Confirmer ou infirmer un vol / Confirm or reject a theft."""
    return await lifecycle.record_police_report(claim_id, data.confirmed, data.file_reference)
