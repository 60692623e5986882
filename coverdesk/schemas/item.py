"""Schémas Article / Item schemas."""

from pydantic import BaseModel, ConfigDict, Field


class ItemBase(BaseModel):
    brand: str = Field(min_length=1, max_length=100)
    model: str = Field(min_length=1, max_length=100)
    price: float = Field(ge=0)
    description: str | None = None
    serial_no: str = Field(min_length=1, max_length=100)


class ItemCreate(ItemBase):
    pass


class ItemRead(ItemBase):
    model_config = ConfigDict(from_attributes=True)
    id: int
