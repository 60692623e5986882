"""Routes Historique / Audit trail routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from coverdesk.database import get_db
from coverdesk.schemas.audit import AuditEntryRead, AuditPage
from coverdesk.services import audit

router = APIRouter()


@router.get("/", response_model=AuditPage)
async def list_audit_entries(
    entity_type: str | None = Query(default=None),
    entity_id: str | None = Query(default=None),
    action: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    total, entries = await audit.list_entries(db, entity_type, entity_id, action, limit, offset)
    return AuditPage(total=total, items=[AuditEntryRead.model_validate(e) for e in entries])


@router.get("/{entity_type}/{entity_id}", response_model=list[AuditEntryRead])
async def entity_history(entity_type: str, entity_id: str, db: AsyncSession = Depends(get_db)):
    """Historique d'un contrat, sinistre... / History of a contract, claim..."""
    return await audit.history(db, entity_type, entity_id)
