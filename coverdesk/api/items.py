"""Routes Articles (pair boutique) / Item routes (shop peer)."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coverdesk.database import get_db
from coverdesk.schemas.item import ItemCreate, ItemRead
from coverdesk.services import catalog

router = APIRouter()


@router.post("/", response_model=ItemRead, status_code=201)
async def create_item(data: ItemCreate, db: AsyncSession = Depends(get_db)):
    return await catalog.create_item(db, data.model_dump())


@router.get("/{item_id}", response_model=ItemRead)
async def get_item(item_id: int, db: AsyncSession = Depends(get_db)):
    return await catalog.get_item(db, item_id)
