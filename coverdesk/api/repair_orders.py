"""Routes Ordres de réparation (pair réparateur) / Repair order routes (repair shop peer)."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coverdesk.api.deps import get_lifecycle
from coverdesk.database import get_db
from coverdesk.schemas.contract import RepairOrderCreate, RepairOrderDetail, RepairOrderRead
from coverdesk.services import catalog
from coverdesk.services.lifecycle import LifecycleManager

router = APIRouter()


@router.get("/", response_model=list[RepairOrderDetail])
async def list_repair_orders(pending_only: bool = True, db: AsyncSession = Depends(get_db)):
    return await catalog.list_repair_orders(db, pending_only)


@router.post("/", response_model=RepairOrderRead, status_code=201)
async def open_repair_order(data: RepairOrderCreate, lifecycle: LifecycleManager = Depends(get_lifecycle)):
    return await lifecycle.open_repair_order(data.claim_id)


@router.post("/{repair_order_id}/complete", response_model=RepairOrderRead)
async def complete_repair_order(repair_order_id: uuid.UUID, lifecycle: LifecycleManager = Depends(get_lifecycle)):
    return await lifecycle.close_repair_order(repair_order_id)
