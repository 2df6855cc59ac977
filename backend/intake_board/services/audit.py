"""Audit trail for application workflow actions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlmodel import col

from intake_board.core.time import utcnow
from intake_board.models.audit_entries import AuditEntry

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

    from intake_board.models.applications import ApplicationStatus


async def record_audit(
    session: AsyncSession,
    *,
    application_id: int,
    action: str,
    actor_id: UUID | None = None,
    from_status: ApplicationStatus | None = None,
    to_status: ApplicationStatus | None = None,
    payload: dict[str, object] | None = None,
    commit: bool = False,
) -> AuditEntry:
    """Stage an append-only entry; workflow operations commit it with their change."""
    entry = AuditEntry(
        application_id=application_id,
        actor_id=actor_id,
        action=action,
        from_status=from_status.value if from_status is not None else None,
        to_status=to_status.value if to_status is not None else None,
        payload=payload,
        created_at=utcnow(),
    )
    session.add(entry)
    if commit:
        await session.commit()
        await session.refresh(entry)
    return entry


async def list_audit_entries(session: AsyncSession, *, application_id: int) -> list[AuditEntry]:
    return await (
        AuditEntry.objects.filter_by(application_id=application_id)
        .order_by(col(AuditEntry.created_at).asc())
        .all(session)
    )
