"""
Service Référentiel / Directory service.
Types de contrat, articles, utilisateurs et listes de consultation par pair
(assureur, boutique, réparateur, police).
Contract types, items, users and per-peer listings.
"""

import logging
import uuid
from typing import Callable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from coverdesk.models.claim import Claim, ClaimStatus
from coverdesk.models.contract import Contract
from coverdesk.models.contract_type import ContractType
from coverdesk.models.item import Item
from coverdesk.models.repair_order import RepairOrder
from coverdesk.models.user import User
from coverdesk.services import audit
from coverdesk.services.errors import InvalidCredentials, NotFound, UserExists
from coverdesk.utils.auth import hash_password, verify_password

log = logging.getLogger(__name__)


# --- Types de contrat / Contract types ---

async def create_contract_type(
    db: AsyncSession,
    data: dict,
    id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
) -> ContractType:
    data = dict(data)
    ctype = ContractType(id=data.pop("id", None) or id_factory(), **data)
    db.add(ctype)
    audit.record(db, "contract_type", ctype.id, "CREATE", {"shop_type": ctype.shop_type})
    await db.flush()
    log.info("Contract type %s created (%s)", ctype.id, ctype.shop_type)
    return ctype


async def set_contract_type_active(db: AsyncSession, contract_type_id: uuid.UUID, active: bool) -> ContractType:
    ctype = await db.get(ContractType, contract_type_id)
    if ctype is None:
        raise NotFound(f"Contract type {contract_type_id} not found")
    if ctype.active != active:
        ctype.active = active
        audit.record(db, "contract_type", ctype.id, "SET_ACTIVE", {"active": active})
        await db.flush()
    return ctype


async def list_contract_types(db: AsyncSession, shop_type: str | None = None) -> list[ContractType]:
    """Lister les types / List contract types.

    Filtré par boutique : sous-chaîne insensible à la casse, actifs uniquement.
    Filtered by shop: case-insensitive substring, active only.
    """
    query = select(ContractType).order_by(ContractType.shop_type)
    if shop_type:
        query = query.where(
            func.upper(ContractType.shop_type).contains(shop_type.upper()),
            ContractType.active.is_(True),
        )
    return list((await db.scalars(query)).all())


# --- Articles / Items ---

async def create_item(db: AsyncSession, data: dict) -> Item:
    item = Item(**data)
    db.add(item)
    await db.flush()
    audit.record(db, "item", item.id, "CREATE", {"serial_no": item.serial_no})
    return item


async def get_item(db: AsyncSession, item_id: int) -> Item:
    item = await db.get(Item, item_id)
    if item is None:
        raise NotFound(f"Item {item_id} not found")
    return item


# --- Utilisateurs / Users ---

async def create_user(db: AsyncSession, username: str, password: str, first_name: str, last_name: str) -> User:
    if await db.get(User, username) is not None:
        raise UserExists(f"User {username} already exists")
    user = User(
        username=username,
        password=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        contract_index=[],
    )
    db.add(user)
    audit.record(db, "user", username, "CREATE", user=username)
    await db.flush()
    log.info("User %s created", username)
    return user


async def get_user(db: AsyncSession, username: str) -> User:
    user = await db.get(User, username)
    if user is None:
        raise NotFound(f"User {username} not found")
    return user


async def authenticate_user(db: AsyncSession, username: str, password: str) -> User:
    user = await db.get(User, username)
    if user is None or not verify_password(password, user.password):
        audit.record(db, "auth", username, "LOGIN_FAILED", user=username)
        # Conserver la trace malgré l'erreur / Keep the trace despite the error
        await db.commit()
        raise InvalidCredentials()
    audit.record(db, "auth", username, "LOGIN", user=username)
    return user


async def update_password(db: AsyncSession, username: str, new_password: str) -> User:
    user = await get_user(db, username)
    user.password = hash_password(new_password)
    audit.record(db, "user", username, "PASSWORD", user=username)
    await db.flush()
    return user


# --- Consultation / Listings ---

async def list_contracts(db: AsyncSession, username: str | None = None) -> list[tuple[Contract, list[Claim] | None]]:
    """Contrats, avec sinistres si filtré par utilisateur / Contracts, with claims when filtered by user."""
    query = select(Contract).order_by(Contract.start_date)
    if username is None:
        return [(c, None) for c in (await db.scalars(query)).all()]

    contracts = (await db.scalars(query.where(Contract.username == username))).all()
    claims_by_contract: dict[uuid.UUID, list[Claim]] = {c.id: [] for c in contracts}
    if contracts:
        claims = await db.scalars(
            select(Claim).where(Claim.contract_id.in_(claims_by_contract.keys())).order_by(Claim.date)
        )
        for claim in claims.all():
            claims_by_contract[claim.contract_id].append(claim)
    return [(c, claims_by_contract[c.id]) for c in contracts]


async def get_contract(db: AsyncSession, contract_id: uuid.UUID) -> Contract:
    contract = await db.get(Contract, contract_id)
    if contract is None:
        raise NotFound(f"Contract {contract_id} not found")
    return contract


async def list_claims(db: AsyncSession, status: ClaimStatus | str | None = None) -> list[Claim]:
    query = select(Claim).order_by(Claim.date)
    if status:
        query = query.where(Claim.status == ClaimStatus.decode(status))
    return list((await db.scalars(query)).all())


async def list_theft_claims(db: AsyncSession) -> list[dict]:
    """Vols en attente de PV pour la police / Thefts awaiting a police report."""
    result = await db.execute(
        select(Claim, Contract, User, Item)
        .join(Contract, Claim.contract_id == Contract.id)
        .join(User, Contract.username == User.username)
        .join(Item, Contract.item_id == Item.id)
        .where(
            Claim.is_theft.is_(True),
            Claim.status == ClaimStatus.FILED,
            Claim.file_reference.is_(None),
        )
        .order_by(Claim.date)
    )
    return [
        {
            "id": claim.id,
            "contract_id": contract.id,
            "item": item,
            "description": claim.description,
            "name": user.full_name,
        }
        for claim, contract, user, item in result.all()
    ]


async def list_repair_orders(db: AsyncSession, pending_only: bool = True) -> list[RepairOrder]:
    query = select(RepairOrder).options(selectinload(RepairOrder.item))
    if pending_only:
        query = query.where(RepairOrder.ready.is_(False))
    return list((await db.scalars(query)).all())
