"""Modèle Type de contrat / Contract type model."""

import uuid

from sqlalchemy import Boolean, CheckConstraint, Float, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coverdesk.database import Base


class ContractType(Base):
    """Offre d'assurance proposée par un type de boutique / Insurance offer for a shop type."""
    __tablename__ = "contract_types"
    __table_args__ = (
        CheckConstraint("min_duration_days <= max_duration_days", name="ck_contract_types_duration"),
        CheckConstraint("max_sum_insured >= 0", name="ck_contract_types_sum_insured"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    shop_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    # Expression tarifaire opaque, évaluée hors de ce service / Opaque pricing expression, evaluated elsewhere
    formula_per_day: Mapped[str] = mapped_column(Text, nullable=False)
    max_sum_insured: Mapped[float] = mapped_column(Float, nullable=False)
    theft_insured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    description: Mapped[str | None] = mapped_column(Text)
    conditions: Mapped[str | None] = mapped_column(Text)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    min_duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    max_duration_days: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relations
    contracts: Mapped[list["Contract"]] = relationship(back_populates="contract_type")

    def __repr__(self) -> str:
        return f"<ContractType {self.shop_type} max={self.max_sum_insured}>"
