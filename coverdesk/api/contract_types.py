"""Routes Types de contrat (pair assureur) / Contract type routes (insurance peer)."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coverdesk.database import get_db
from coverdesk.schemas.contract_type import ContractTypeActive, ContractTypeCreate, ContractTypeRead
from coverdesk.services import catalog

router = APIRouter()


@router.get("/", response_model=list[ContractTypeRead])
async def list_contract_types(shop_type: str | None = None, db: AsyncSession = Depends(get_db)):
    return await catalog.list_contract_types(db, shop_type)


@router.post("/", response_model=ContractTypeRead, status_code=201)
async def create_contract_type(data: ContractTypeCreate, db: AsyncSession = Depends(get_db)):
    return await catalog.create_contract_type(db, data.model_dump())


@router.put("/{contract_type_id}/active", response_model=ContractTypeRead)
async def set_active(contract_type_id: uuid.UUID, data: ContractTypeActive, db: AsyncSession = Depends(get_db)):
    """Activer/désactiver une offre / Enable or disable an offer."""
    return await catalog.set_contract_type_active(db, contract_type_id, data.active)
