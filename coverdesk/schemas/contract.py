"""Schémas Contrat et Sinistre / Contract and claim schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from coverdesk.models.claim import ClaimStatus
from coverdesk.schemas.item import ItemRead


class ContractCreate(BaseModel):
    username: str
    item_id: int
    contract_type_id: uuid.UUID
    start_date: datetime
    end_date: datetime


class ContractRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    username: str
    item_id: int
    contract_type_id: uuid.UUID
    start_date: datetime
    end_date: datetime
    void: bool
    claim_index: list[uuid.UUID] = []


class ClaimCreate(BaseModel):
    contract_id: uuid.UUID
    date: datetime
    description: str = Field(min_length=1)
    is_theft: bool = False
    reimbursable: float = 0.0


class ClaimStatusUpdate(BaseModel):
    # Texte décodé par ClaimStatus.decode (noms ou anciens codes) / Decoded by ClaimStatus.decode
    status: str
    reimbursable: float | None = None


class ClaimRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    contract_id: uuid.UUID
    date: datetime
    description: str
    is_theft: bool
    status: ClaimStatus
    reimbursable: float
    repaired: bool
    file_reference: str | None = None
    theft_confirmed: bool | None = None


class ContractWithClaims(ContractRead):
    claims: list[ClaimRead] | None = None


class PoliceReport(BaseModel):
    confirmed: bool
    file_reference: str = Field(min_length=1, max_length=100)


class TheftClaimRead(BaseModel):
    """Vol à instruire par la police / Theft to be investigated by the police."""
    id: uuid.UUID
    contract_id: uuid.UUID
    item: ItemRead
    description: str
    name: str


class RepairOrderCreate(BaseModel):
    claim_id: uuid.UUID


class RepairOrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    claim_id: uuid.UUID
    contract_id: uuid.UUID
    item_id: int
    ready: bool


class RepairOrderDetail(RepairOrderRead):
    item: ItemRead


class IndexDriftRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    entity_type: str
    entity_id: str
    expected: list[str]
    stored: list[str]
