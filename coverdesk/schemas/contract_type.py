"""Schémas Type de contrat / Contract type schemas."""

import uuid

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ContractTypeBase(BaseModel):
    shop_type: str = Field(min_length=1, max_length=100)
    formula_per_day: str
    max_sum_insured: float = Field(ge=0)
    theft_insured: bool = False
    description: str | None = None
    conditions: str | None = None
    active: bool = True
    min_duration_days: int = Field(ge=0)
    max_duration_days: int = Field(ge=0)

    @model_validator(mode="after")
    def check_duration_bounds(self):
        if self.min_duration_days > self.max_duration_days:
            raise ValueError("min_duration_days must be <= max_duration_days")
        return self


class ContractTypeCreate(ContractTypeBase):
    id: uuid.UUID | None = None


class ContractTypeActive(BaseModel):
    active: bool


class ContractTypeRead(ContractTypeBase):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
