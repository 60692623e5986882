"""Routes Contrats / Contract routes."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coverdesk.api.deps import get_lifecycle
from coverdesk.database import get_db
from coverdesk.schemas.contract import ClaimRead, ContractCreate, ContractRead, ContractWithClaims
from coverdesk.services import catalog
from coverdesk.services.lifecycle import LifecycleManager

router = APIRouter()


@router.get("/", response_model=list[ContractWithClaims])
async def list_contracts(username: str | None = None, db: AsyncSession = Depends(get_db)):
    """Contrats, avec sinistres si filtré par utilisateur / Contracts, with claims when filtered by user."""
    rows = await catalog.list_contracts(db, username)
    return [
        ContractWithClaims(
            **ContractRead.model_validate(contract).model_dump(),
            claims=None if claims is None else [ClaimRead.model_validate(c) for c in claims],
        )
        for contract, claims in rows
    ]


@router.get("/{contract_id}", response_model=ContractRead)
async def get_contract(contract_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await catalog.get_contract(db, contract_id)


@router.post("/", response_model=ContractRead, status_code=201)
async def create_contract(data: ContractCreate, lifecycle: LifecycleManager = Depends(get_lifecycle)):
    return await lifecycle.create_contract(
        data.username, data.item_id, data.contract_type_id, data.start_date, data.end_date
    )


@router.post("/{contract_id}/void", response_model=ContractRead)
async def void_contract(contract_id: uuid.UUID, lifecycle: LifecycleManager = Depends(get_lifecycle)):
    return await lifecycle.void_contract(contract_id)
