"""Schémas Historique / Audit trail schemas."""

import json

from pydantic import BaseModel, ConfigDict, field_validator


class AuditEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    entity_type: str
    entity_id: str
    action: str
    changes: dict | None = None
    user: str | None = None
    timestamp: str

    @field_validator("changes", mode="before")
    @classmethod
    def parse_changes(cls, value):
        # Stocké en texte JSON / Stored as JSON text
        if isinstance(value, str):
            return json.loads(value)
        return value


class AuditPage(BaseModel):
    total: int
    items: list[AuditEntryRead]
