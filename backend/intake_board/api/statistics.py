"""Board reporting endpoints."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter

from intake_board.api.deps import REVIEWER_DEP, SESSION_DEP
from intake_board.schemas.statistics import ApplicationStatisticsRead, ReviewerStatisticsRead
from intake_board.services import statistics

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from intake_board.models.users import User

router = APIRouter(prefix="/statistics", tags=["statistics"])


@router.get("/applications", response_model=ApplicationStatisticsRead)
async def application_statistics(
    session: AsyncSession = SESSION_DEP,
    _reviewer: User = REVIEWER_DEP,
) -> ApplicationStatisticsRead:
    stats = await statistics.application_statistics(session)
    return ApplicationStatisticsRead(**asdict(stats))


@router.get("/reviewers/me", response_model=ReviewerStatisticsRead)
async def my_reviewer_statistics(
    session: AsyncSession = SESSION_DEP,
    reviewer: User = REVIEWER_DEP,
) -> ReviewerStatisticsRead:
    stats = await statistics.reviewer_statistics(session, reviewer_id=reviewer.id)
    return ReviewerStatisticsRead(**asdict(stats))


@router.get("/reviewers/{reviewer_id}", response_model=ReviewerStatisticsRead)
async def reviewer_statistics(
    reviewer_id: UUID,
    session: AsyncSession = SESSION_DEP,
    _reviewer: User = REVIEWER_DEP,
) -> ReviewerStatisticsRead:
    stats = await statistics.reviewer_statistics(session, reviewer_id=reviewer_id)
    return ReviewerStatisticsRead(**asdict(stats))
