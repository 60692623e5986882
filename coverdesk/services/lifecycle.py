"""
Service Cycle de vie contrats/sinistres / Contract and claim lifecycle service.
Seul propriétaire des invariants : index dérivés, fenêtre de couverture,
encours de couverture et machine à états des sinistres.
Sole owner of the invariants: derived indexes, coverage window,
running coverage total and the claim state machine.

Une opération = une transaction. Les écritures sur un même agrégat
(contrat, utilisateur) sont sérialisées par verrou, avec reprise bornée.
One operation = one transaction. Writes on the same aggregate are serialized
by lock, with bounded retry surfaced as Busy.
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Awaitable, Callable, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from coverdesk.config import settings
from coverdesk.models.claim import COVERED_STATUSES, Claim, ClaimStatus
from coverdesk.models.contract import Contract
from coverdesk.models.contract_type import ContractType
from coverdesk.models.item import Item
from coverdesk.models.repair_order import RepairOrder
from coverdesk.models.user import User
from coverdesk.services import audit
from coverdesk.services.errors import (
    Busy,
    ContractVoided,
    CoverageExceeded,
    InactiveContractType,
    InvalidDuration,
    InvalidTransition,
    ItemConflict,
    NotFound,
    OutOfCoverageWindow,
    RepairNotAllowed,
    TheftNotConfirmed,
    TheftNotCovered,
)
from coverdesk.services.locks import KeyedLocks, LockTimeout

log = logging.getLogger(__name__)

T = TypeVar("T")

# Graphe des transitions / Transition graph
ALLOWED_TRANSITIONS: dict[ClaimStatus, frozenset[ClaimStatus]] = {
    ClaimStatus.FILED: frozenset({ClaimStatus.APPROVED, ClaimStatus.REJECTED}),
    ClaimStatus.APPROVED: frozenset({ClaimStatus.PAID, ClaimStatus.REJECTED}),
    ClaimStatus.REJECTED: frozenset({ClaimStatus.APPROVED}),
    ClaimStatus.PAID: frozenset(),
}

COVERAGE_EPSILON = 1e-6

# SQLSTATE PostgreSQL : sérialisation, deadlock, lock not available
_CONTENTION_SQLSTATES = {"40001", "40P01", "55P03"}


def can_transition(current: ClaimStatus, target: ClaimStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def _as_datetime(value: date | datetime) -> datetime:
    """Normaliser en datetime naïf UTC / Normalize to naive UTC datetime."""
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _clamp(amount: float, upper: float) -> float:
    return max(0.0, min(float(amount), upper))


def _is_contention(exc: Exception) -> bool:
    if isinstance(exc, (LockTimeout, StaleDataError)):
        return True
    if isinstance(exc, DBAPIError):
        sqlstate = getattr(exc.orig, "sqlstate", None)
        return sqlstate in _CONTENTION_SQLSTATES or "database is locked" in str(exc.orig)
    return False


@dataclass
class IndexDrift:
    """Écart entre un index stocké et les clés étrangères / Gap between a stored index and foreign keys."""
    entity_type: str  # "contract" ou "user"
    entity_id: str
    expected: list[str]
    stored: list[str] = field(default_factory=list)


class LifecycleManager:
    """Opérations préservant les invariants / Invariant-preserving operations."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
        locks: KeyedLocks | None = None,
        retry_attempts: int | None = None,
        retry_backoff_ms: int | None = None,
    ):
        self.session_factory = session_factory
        self.id_factory = id_factory
        self.locks = locks or KeyedLocks(timeout=settings.LOCK_TIMEOUT_SECONDS)
        self.retry_attempts = settings.LOCK_RETRY_ATTEMPTS if retry_attempts is None else retry_attempts
        if self.retry_attempts < 1:
            raise ValueError("retry_attempts must be at least 1")
        self.retry_backoff_ms = settings.LOCK_RETRY_BACKOFF_MS if retry_backoff_ms is None else retry_backoff_ms

    # ------------------------------------------------------------------
    # Exécution transactionnelle / Transactional execution
    # ------------------------------------------------------------------

    async def _run(
        self,
        operation: str,
        keys: tuple[str, ...],
        work: Callable[[AsyncSession], Awaitable[T]],
    ) -> T:
        """Exécuter `work` sous verrous dans une transaction / Run `work` under locks in one transaction.

        Reprise avec backoff exponentiel sur contention, puis Busy.
        Retry with exponential backoff on contention, then Busy.
        """
        for attempt in range(1, self.retry_attempts + 1):
            try:
                async with self.locks.hold(*keys):
                    async with self.session_factory() as session:
                        async with session.begin():
                            return await work(session)
            except Exception as exc:
                if not _is_contention(exc):
                    raise
                if attempt == self.retry_attempts:
                    log.warning("%s busy on %s after %d attempts: %s", operation, keys, attempt, exc)
                    raise Busy(f"{operation}: aggregate busy, retry later") from exc
                delay = self.retry_backoff_ms * (2 ** (attempt - 1)) / 1000
                log.info("%s contended on %s, retry %d/%d in %.3fs", operation, keys, attempt, self.retry_attempts, delay)
                await asyncio.sleep(delay)
        raise Busy(f"{operation}: aggregate busy, retry later")

    async def _read(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async with self.session_factory() as session:
            return await work(session)

    # ------------------------------------------------------------------
    # Lectures / Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def _require(session: AsyncSession, model, key, label: str):
        row = await session.get(model, key)
        if row is None:
            raise NotFound(f"{label} {key} not found")
        return row

    @staticmethod
    async def _user_for_update(session: AsyncSession, username: str) -> User:
        user = await session.scalar(select(User).where(User.username == username).with_for_update())
        if user is None:
            raise NotFound(f"User {username} not found")
        return user

    @staticmethod
    async def _contract_for_update(session: AsyncSession, contract_id: uuid.UUID) -> Contract:
        contract = await session.scalar(select(Contract).where(Contract.id == contract_id).with_for_update())
        if contract is None:
            raise NotFound(f"Contract {contract_id} not found")
        return contract

    @staticmethod
    async def _covered_total(session: AsyncSession, contract_id: uuid.UUID, exclude: uuid.UUID | None = None) -> float:
        """Encours Approved/Paid du contrat / Approved/Paid running total of the contract."""
        query = select(func.coalesce(func.sum(Claim.reimbursable), 0.0)).where(
            Claim.contract_id == contract_id,
            Claim.status.in_(COVERED_STATUSES),
        )
        if exclude is not None:
            query = query.where(Claim.id != exclude)
        return float(await session.scalar(query) or 0.0)

    async def _contract_id_of_claim(self, claim_id: uuid.UUID) -> uuid.UUID:
        async def work(session: AsyncSession) -> uuid.UUID:
            contract_id = await session.scalar(select(Claim.contract_id).where(Claim.id == claim_id))
            if contract_id is None:
                raise NotFound(f"Claim {claim_id} not found")
            return contract_id

        return await self._read(work)

    async def running_total(self, contract_id: uuid.UUID) -> float:
        return await self._read(lambda session: self._covered_total(session, contract_id))

    # ------------------------------------------------------------------
    # Contrats / Contracts
    # ------------------------------------------------------------------

    async def create_contract(
        self,
        username: str,
        item_id: int,
        contract_type_id: uuid.UUID,
        start_date: date | datetime,
        end_date: date | datetime,
    ) -> Contract:
        """Créer un contrat et l'indexer chez l'utilisateur / Create a contract and index it on the user.

        Verrous : utilisateur, article, puis nouveau contrat (ordre fixe).
        Locks: user, item, then the new contract (fixed order).
        """
        contract_id = self.id_factory()
        start, end = _as_datetime(start_date), _as_datetime(end_date)

        async def work(session: AsyncSession) -> Contract:
            user = await self._user_for_update(session, username)
            await self._require(session, Item, item_id, "Item")
            ctype = await self._require(session, ContractType, contract_type_id, "Contract type")
            if not ctype.active:
                raise InactiveContractType(f"Contract type {contract_type_id} is not active")

            if start >= end:
                raise InvalidDuration("start_date must be before end_date")
            days = (end - start).days
            if not ctype.min_duration_days <= days <= ctype.max_duration_days:
                raise InvalidDuration(
                    f"Duration {days}d outside [{ctype.min_duration_days}, {ctype.max_duration_days}]"
                )

            conflict = await session.scalar(
                select(Contract.id).where(
                    Contract.item_id == item_id,
                    Contract.void.is_(False),
                    Contract.start_date < end,
                    Contract.end_date > start,
                ).limit(1)
            )
            if conflict is not None:
                raise ItemConflict(f"Item {item_id} already covered by contract {conflict}")

            contract = Contract(
                id=contract_id,
                username=username,
                item_id=item_id,
                contract_type_id=contract_type_id,
                start_date=start,
                end_date=end,
                void=False,
                claim_index=[],
            )
            session.add(contract)
            user.contract_index = [*user.contract_index, str(contract_id)]
            audit.record(session, "contract", contract_id, "CREATE", {
                "item_id": item_id,
                "contract_type_id": contract_type_id,
                "start_date": start,
                "end_date": end,
            }, user=username)
            await session.flush()
            return contract

        contract = await self._run(
            "create_contract",
            (f"user:{username}", f"item:{item_id}", f"contract:{contract_id}"),
            work,
        )
        log.info("Contract %s created for %s (item %s)", contract.id, username, item_id)
        return contract

    async def void_contract(self, contract_id: uuid.UUID) -> Contract:
        """Annuler un contrat (idempotent) / Void a contract (idempotent). Claims are kept."""

        async def work(session: AsyncSession) -> Contract:
            contract = await self._contract_for_update(session, contract_id)
            if contract.void:
                return contract
            contract.void = True
            audit.record(session, "contract", contract.id, "VOID", user=contract.username)
            await session.flush()
            log.info("Contract %s voided", contract.id)
            return contract

        return await self._run("void_contract", (f"contract:{contract_id}",), work)

    # ------------------------------------------------------------------
    # Sinistres / Claims
    # ------------------------------------------------------------------

    async def file_claim(
        self,
        contract_id: uuid.UUID,
        date: date | datetime,
        description: str,
        is_theft: bool,
        reimbursable_request: float,
    ) -> Claim:
        """Déclarer un sinistre / File a claim.

        Le montant demandé est borné au prix de l'article puis au reliquat
        de couverture (max_sum_insured moins l'encours Approved/Paid).
        The requested amount is clamped to the item price, then to the
        remaining coverage.
        """
        claim_id = self.id_factory()
        when = _as_datetime(date)

        async def work(session: AsyncSession) -> Claim:
            contract = await self._contract_for_update(session, contract_id)
            if contract.void:
                raise ContractVoided(f"Contract {contract_id} is void")
            if not contract.covers(when):
                raise OutOfCoverageWindow(
                    f"Claim date {when.isoformat()} outside {contract.start_date.isoformat()} - {contract.end_date.isoformat()}"
                )
            ctype = await self._require(session, ContractType, contract.contract_type_id, "Contract type")
            if is_theft and not ctype.theft_insured:
                raise TheftNotCovered(f"Contract type {ctype.id} does not insure theft")
            item = await self._require(session, Item, contract.item_id, "Item")

            requested = _clamp(reimbursable_request, item.price)
            remaining = max(0.0, ctype.max_sum_insured - await self._covered_total(session, contract.id))
            if requested > 0 and remaining <= COVERAGE_EPSILON:
                raise CoverageExceeded(f"No coverage left on contract {contract_id}")

            claim = Claim(
                id=claim_id,
                contract_id=contract.id,
                date=when,
                description=description,
                is_theft=is_theft,
                status=ClaimStatus.FILED,
                reimbursable=min(requested, remaining),
                repaired=False,
            )
            session.add(claim)
            contract.claim_index = [*contract.claim_index, str(claim_id)]
            audit.record(session, "claim", claim_id, "FILE", {
                "contract_id": contract.id,
                "is_theft": is_theft,
                "requested": reimbursable_request,
                "reimbursable": claim.reimbursable,
            }, user=contract.username)
            await session.flush()
            return claim

        claim = await self._run("file_claim", (f"contract:{contract_id}",), work)
        log.info("Claim %s filed on contract %s (%.2f)", claim.id, contract_id, claim.reimbursable)
        return claim

    async def transition_claim_status(
        self,
        claim_id: uuid.UUID,
        new_status: ClaimStatus | str,
        reimbursable: float | None = None,
    ) -> Claim:
        """Faire avancer un sinistre / Move a claim through its state machine.

        `reimbursable` ne s'applique qu'au passage en Approved (montant expert).
        `reimbursable` only applies when moving into Approved (assessed amount).
        """
        target = ClaimStatus.decode(new_status)
        contract_id = await self._contract_id_of_claim(claim_id)

        async def work(session: AsyncSession) -> Claim:
            claim = await self._require(session, Claim, claim_id, "Claim")
            contract = await self._contract_for_update(session, contract_id)
            current = claim.status
            if not can_transition(current, target):
                raise InvalidTransition(f"Cannot move claim from {current.value} to {target.value}")

            if target is ClaimStatus.APPROVED:
                if claim.is_theft and not claim.theft_confirmed:
                    raise TheftNotConfirmed(f"Theft claim {claim_id} has no confirming police report")
                item = await self._require(session, Item, contract.item_id, "Item")
                ctype = await self._require(session, ContractType, contract.contract_type_id, "Contract type")
                amount = claim.reimbursable if reimbursable is None else _clamp(reimbursable, item.price)
                covered = await self._covered_total(session, contract.id, exclude=claim.id)
                if covered + amount > ctype.max_sum_insured + COVERAGE_EPSILON:
                    raise CoverageExceeded(
                        f"Approving {amount:.2f} brings total to {covered + amount:.2f} "
                        f"above {ctype.max_sum_insured:.2f}"
                    )
                claim.reimbursable = amount

            claim.status = target
            audit.record(session, "claim", claim.id, "STATUS", {
                "from": current.value,
                "to": target.value,
                "reimbursable": claim.reimbursable,
            }, user=contract.username)

            # Vol indemnisé : l'article n'existe plus / Paid theft: the item is gone
            if target is ClaimStatus.PAID and claim.is_theft and not contract.void:
                contract.void = True
                audit.record(session, "contract", contract.id, "VOID", {"reason": "theft_paid", "claim_id": claim.id})

            await session.flush()
            return claim

        claim = await self._run("transition_claim_status", (f"contract:{contract_id}",), work)
        log.info("Claim %s -> %s", claim.id, claim.status.value)
        return claim

    async def record_police_report(self, claim_id: uuid.UUID, confirmed: bool, file_reference: str) -> Claim:
        """Enregistrer le PV de police d'un vol / Record the police report for a theft.

        Un vol non confirmé est rejeté / An unconfirmed theft is rejected.
        """
        contract_id = await self._contract_id_of_claim(claim_id)

        async def work(session: AsyncSession) -> Claim:
            claim = await self._require(session, Claim, claim_id, "Claim")
            await self._contract_for_update(session, contract_id)
            if not claim.is_theft or claim.status is not ClaimStatus.FILED or claim.file_reference:
                raise InvalidTransition(f"Claim {claim_id} is not a theft awaiting a police report")
            claim.file_reference = file_reference
            claim.theft_confirmed = confirmed
            if not confirmed:
                claim.status = ClaimStatus.REJECTED
            audit.record(session, "claim", claim.id, "POLICE_REPORT", {
                "confirmed": confirmed,
                "file_reference": file_reference,
            })
            await session.flush()
            return claim

        claim = await self._run("record_police_report", (f"contract:{contract_id}",), work)
        log.info("Police report %s on claim %s (confirmed=%s)", file_reference, claim_id, confirmed)
        return claim

    # ------------------------------------------------------------------
    # Réparations / Repairs
    # ------------------------------------------------------------------

    async def open_repair_order(self, claim_id: uuid.UUID) -> RepairOrder:
        """Ouvrir un ordre de réparation / Open a repair order.

        Contrat et article sont déduits du sinistre, jamais fournis.
        Contract and item are derived from the claim, never supplied.
        """
        order_id = self.id_factory()
        contract_id = await self._contract_id_of_claim(claim_id)

        async def work(session: AsyncSession) -> RepairOrder:
            claim = await self._require(session, Claim, claim_id, "Claim")
            contract = await self._contract_for_update(session, contract_id)
            if claim.status not in COVERED_STATUSES:
                raise RepairNotAllowed(f"Claim {claim_id} is {claim.status.value}, repair requires APPROVED or PAID")
            if claim.repaired:
                raise RepairNotAllowed(f"Claim {claim_id} is already repaired")
            if claim.is_theft:
                raise RepairNotAllowed("Cannot repair stolen items")
            existing = await session.scalar(select(RepairOrder.id).where(RepairOrder.claim_id == claim_id))
            if existing is not None:
                raise RepairNotAllowed(f"Claim {claim_id} already has repair order {existing}")

            order = RepairOrder(
                id=order_id,
                claim_id=claim.id,
                contract_id=contract.id,
                item_id=contract.item_id,
                ready=False,
            )
            session.add(order)
            audit.record(session, "repair_order", order_id, "OPEN", {"claim_id": claim.id}, user=contract.username)
            await session.flush()
            return order

        order = await self._run("open_repair_order", (f"contract:{contract_id}",), work)
        log.info("Repair order %s opened for claim %s", order.id, claim_id)
        return order

    async def close_repair_order(self, repair_order_id: uuid.UUID) -> RepairOrder:
        """Terminer une réparation (idempotent) / Complete a repair (idempotent)."""

        async def locate(session: AsyncSession) -> uuid.UUID:
            contract_id = await session.scalar(
                select(RepairOrder.contract_id).where(RepairOrder.id == repair_order_id)
            )
            if contract_id is None:
                raise NotFound(f"Repair order {repair_order_id} not found")
            return contract_id

        contract_id = await self._read(locate)

        async def work(session: AsyncSession) -> RepairOrder:
            order = await self._require(session, RepairOrder, repair_order_id, "Repair order")
            await self._contract_for_update(session, contract_id)
            claim = await self._require(session, Claim, order.claim_id, "Claim")
            if order.ready and claim.repaired:
                return order
            order.ready = True
            claim.repaired = True
            audit.record(session, "repair_order", order.id, "COMPLETE", {"claim_id": claim.id})
            await session.flush()
            log.info("Repair order %s completed", order.id)
            return order

        return await self._run("close_repair_order", (f"contract:{contract_id}",), work)

    # ------------------------------------------------------------------
    # Maintenance des index / Index maintenance
    # ------------------------------------------------------------------

    @staticmethod
    async def _index_drift(session: AsyncSession) -> list[IndexDrift]:
        claims_by_contract: dict[uuid.UUID, list[str]] = defaultdict(list)
        for claim_id, contract_id in (
            await session.execute(select(Claim.id, Claim.contract_id).order_by(Claim.date, Claim.id))
        ).all():
            claims_by_contract[contract_id].append(str(claim_id))

        contracts_by_user: dict[str, list[str]] = defaultdict(list)
        drifts: list[IndexDrift] = []
        contracts = (await session.scalars(select(Contract).order_by(Contract.start_date, Contract.id))).all()
        for contract in contracts:
            contracts_by_user[contract.username].append(str(contract.id))
            expected = claims_by_contract.get(contract.id, [])
            stored = list(contract.claim_index or [])
            if sorted(stored) != sorted(expected):
                drifts.append(IndexDrift("contract", str(contract.id), expected, stored))

        for user in (await session.scalars(select(User).order_by(User.username))).all():
            expected = contracts_by_user.get(user.username, [])
            stored = list(user.contract_index or [])
            if sorted(stored) != sorted(expected):
                drifts.append(IndexDrift("user", user.username, expected, stored))
        return drifts

    async def check_indexes(self) -> list[IndexDrift]:
        """Comparer les index aux clés étrangères / Compare cached indexes with foreign keys."""
        return await self._read(self._index_drift)

    async def rebuild_indexes(self) -> int:
        """Recalculer les index en écart / Recompute drifted indexes. Returns rows corrected."""

        async def work(session: AsyncSession) -> int:
            drifts = await self._index_drift(session)
            for drift in drifts:
                if drift.entity_type == "contract":
                    contract = await session.get(Contract, uuid.UUID(drift.entity_id))
                    contract.claim_index = drift.expected
                else:
                    user = await session.get(User, drift.entity_id)
                    user.contract_index = drift.expected
                audit.record(session, drift.entity_type, drift.entity_id, "REINDEX", {
                    "stored": drift.stored,
                    "expected": drift.expected,
                })
            await session.flush()
            return len(drifts)

        corrected = await self._run("rebuild_indexes", (), work)
        if corrected:
            log.warning("Rebuilt %d drifted indexes", corrected)
        return corrected
