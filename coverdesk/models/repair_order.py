"""Modèle Ordre de réparation / Repair order model."""

import uuid

from sqlalchemy import Boolean, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coverdesk.database import Base


class RepairOrder(Base):
    """Au plus un ordre par sinistre / At most one order per claim."""
    __tablename__ = "repair_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    claim_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("claims.id"), nullable=False, unique=True)
    contract_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("contracts.id"), nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    ready: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    # Relations
    claim: Mapped["Claim"] = relationship()
    item: Mapped["Item"] = relationship()

    def __repr__(self) -> str:
        return f"<RepairOrder {self.id} claim={self.claim_id} ready={self.ready}>"
