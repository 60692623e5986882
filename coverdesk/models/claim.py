"""Modèle Sinistre / Claim model."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Float, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coverdesk.database import Base
from coverdesk.services.errors import InvalidStatus


class ClaimStatus(str, enum.Enum):
    """Statut du sinistre / Claim status."""
    FILED = "FILED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PAID = "PAID"

    @classmethod
    def decode(cls, value: "str | ClaimStatus") -> "ClaimStatus":
        """Décoder un statut externe / Decode an external status.

        Accepte le nom (insensible à la casse) et les anciens codes d'une lettre.
        Accepts the name (case-insensitive) and the legacy one-letter codes.
        Raises InvalidStatus for anything else.
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().upper()
        if key in cls.__members__:
            return cls[key]
        if key in LEGACY_STATUS_CODES:
            return LEGACY_STATUS_CODES[key]
        raise InvalidStatus(f"Unknown claim status: {value!r}")


# Codes historiques / Legacy codes
LEGACY_STATUS_CODES: dict[str, ClaimStatus] = {
    "N": ClaimStatus.FILED,
    "R": ClaimStatus.APPROVED,
    "J": ClaimStatus.REJECTED,
    "F": ClaimStatus.PAID,
}

# Statuts comptés dans l'encours de couverture / Statuses counted in the running coverage total
COVERED_STATUSES = (ClaimStatus.APPROVED, ClaimStatus.PAID)


class Claim(Base):
    __tablename__ = "claims"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    contract_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("contracts.id"), nullable=False, index=True)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    is_theft: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[ClaimStatus] = mapped_column(Enum(ClaimStatus), nullable=False, default=ClaimStatus.FILED)
    reimbursable: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    repaired: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    file_reference: Mapped[str | None] = mapped_column(String(100))  # référence PV police
    theft_confirmed: Mapped[bool | None] = mapped_column(Boolean)  # issue du PV, None tant qu'absent

    # Relations
    contract: Mapped["Contract"] = relationship(back_populates="claims")

    def __repr__(self) -> str:
        return f"<Claim {self.id} {self.status.value} {self.reimbursable}>"
