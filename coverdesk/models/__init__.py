"""
Modèles SQLAlchemy / SQLAlchemy models.
Importer tous les modèles ici pour que Base.metadata les connaisse.
Import all models here so Base.metadata knows about them.
"""

from coverdesk.models.contract_type import ContractType
from coverdesk.models.item import Item
from coverdesk.models.user import User
from coverdesk.models.contract import Contract
from coverdesk.models.claim import COVERED_STATUSES, LEGACY_STATUS_CODES, Claim, ClaimStatus
from coverdesk.models.repair_order import RepairOrder
from coverdesk.models.audit import AuditLog

__all__ = [
    "ContractType",
    "Item",
    "User",
    "Contract",
    "Claim",
    "ClaimStatus",
    "COVERED_STATUSES",
    "LEGACY_STATUS_CODES",
    "RepairOrder",
    "AuditLog",
]
