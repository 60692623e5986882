"""Modèle Utilisateur (assuré) / User (policy holder) model."""

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coverdesk.database import Base


class User(Base):
    """Assuré titulaire de contrats / Policy holder owning contracts."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(100), primary_key=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)  # hash bcrypt
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    # Index dérivé des contrats (ids en texte) / Derived contract index (ids as text)
    contract_index: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Relations
    contracts: Mapped[list["Contract"]] = relationship(back_populates="user")

    __mapper_args__ = {"version_id_col": version}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<User {self.username}>"
