"""Journal d'audit / Audit trail helper."""

import json
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from coverdesk.models.audit import AuditLog


def record(
    session: AsyncSession,
    entity_type: str,
    entity_id,
    action: str,
    changes: dict | None = None,
    user: str | None = None,
) -> AuditLog:
    """Ajouter une ligne d'audit dans la transaction courante / Add an audit row to the current transaction."""
    entry = AuditLog(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        changes=json.dumps(changes, default=str) if changes is not None else None,
        user=user,
        timestamp=datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )
    session.add(entry)
    return entry


async def list_entries(
    session: AsyncSession,
    entity_type: str | None = None,
    entity_id: str | None = None,
    action: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[int, list[AuditLog]]:
    """Derniers événements d'abord / Most recent events first. Returns (total, page)."""
    filters = []
    if entity_type:
        filters.append(AuditLog.entity_type == entity_type)
    if entity_id:
        filters.append(AuditLog.entity_id == entity_id)
    if action:
        filters.append(AuditLog.action == action.upper())

    total = await session.scalar(select(func.count(AuditLog.id)).where(*filters)) or 0
    page = await session.scalars(
        select(AuditLog).where(*filters).order_by(AuditLog.id.desc()).offset(offset).limit(limit)
    )
    return total, list(page.all())


async def history(session: AsyncSession, entity_type: str, entity_id: str) -> list[AuditLog]:
    """Historique chronologique d'une entité / Chronological history of one entity."""
    rows = await session.scalars(
        select(AuditLog)
        .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
        .order_by(AuditLog.id)
    )
    return list(rows.all())
