"""Modèle Historique / Audit log model."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from coverdesk.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(100), nullable=False)  # UUID, int ou username
    action: Mapped[str] = mapped_column(String(30), nullable=False)  # CREATE, VOID, STATUS, ...
    changes: Mapped[str | None] = mapped_column(Text)  # JSON des changements
    user: Mapped[str | None] = mapped_column(String(100))
    timestamp: Mapped[str] = mapped_column(String(32), nullable=False)  # ISO 8601

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.entity_type}:{self.entity_id}>"
