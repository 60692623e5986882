"""Modèle Contrat d'assurance / Insurance contract model."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coverdesk.database import Base


class Contract(Base):
    """1 contrat = 1 article assuré sur une période / 1 contract = 1 item insured over a period."""
    __tablename__ = "contracts"
    __table_args__ = (CheckConstraint("start_date < end_date", name="ck_contracts_period"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    username: Mapped[str] = mapped_column(ForeignKey("users.username"), nullable=False, index=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False, index=True)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    void: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    contract_type_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("contract_types.id"), nullable=False)
    # Index dérivé des sinistres (ids en texte) / Derived claim index (ids as text)
    claim_index: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Relations
    user: Mapped["User"] = relationship(back_populates="contracts")
    item: Mapped["Item"] = relationship()
    contract_type: Mapped["ContractType"] = relationship(back_populates="contracts")
    claims: Mapped[list["Claim"]] = relationship(back_populates="contract", order_by="Claim.date")

    __mapper_args__ = {"version_id_col": version}

    @property
    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days

    def covers(self, when: datetime) -> bool:
        """Date dans la fenêtre de couverture / Date within the coverage window."""
        return self.start_date <= when <= self.end_date

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start_date < end and start < self.end_date

    def __repr__(self) -> str:
        return f"<Contract {self.id} {self.username} void={self.void}>"
