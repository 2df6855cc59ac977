# ruff: noqa: INP001
"""Pytest configuration shared across backend tests."""

from __future__ import annotations

import os
import sys
from collections.abc import AsyncIterator
from decimal import Decimal
from pathlib import Path
from typing import cast
from uuid import UUID, uuid4

import pytest
import pytest_asyncio

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Deterministic settings during import-time initialization, regardless of shell env.
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DB_AUTO_MIGRATE"] = "false"
os.environ["BASE_URL"] = "https://board.example.org"
os.environ["RQ_DISPATCH_THROTTLE_SECONDS"] = "0"

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402
from sqlmodel.ext.asyncio.session import AsyncSession  # noqa: E402

from intake_board import models as _models  # noqa: E402,F401
from intake_board.models.applications import Application  # noqa: E402
from intake_board.models.users import User, UserRole  # noqa: E402
from intake_board.services import applications  # noqa: E402
from intake_board.services.roster import Reviewer  # noqa: E402


class FakeRedis:
    """In-process stand-in for the list and sorted-set commands the queue uses."""

    def __init__(self) -> None:
        self.lists: dict[str, list[str]] = {}
        self.zsets: dict[str, dict[str, float]] = {}

    def lpush(self, key: str, *values: str | bytes) -> int:
        items = self.lists.setdefault(key, [])
        for value in values:
            items.insert(0, value.decode() if isinstance(value, bytes) else value)
        return len(items)

    def rpop(self, key: str) -> str | None:
        items = self.lists.get(key) or []
        if not items:
            return None
        return items.pop()

    def brpop(self, keys: list[str], timeout: float = 0) -> tuple[str, str] | None:
        del timeout
        for key in keys:
            value = self.rpop(key)
            if value is not None:
                return key, value
        return None

    def zadd(self, key: str, mapping: dict[str, float]) -> int:
        self.zsets.setdefault(key, {}).update(mapping)
        return len(mapping)

    def zrangebyscore(
        self,
        key: str,
        min_score: float | str,
        max_score: float | str,
        *,
        start: int | None = None,
        num: int | None = None,
        withscores: bool = False,
    ) -> list[object]:
        low = float("-inf") if min_score == "-inf" else float(min_score)
        high = float("inf") if max_score == "+inf" else float(max_score)
        members = sorted(
            (score, member)
            for member, score in self.zsets.get(key, {}).items()
            if low <= score <= high
        )
        if start is not None and num is not None:
            members = members[start : start + num]
        if withscores:
            return [(member, score) for score, member in members]
        return [member for _, member in members]

    def zrem(self, key: str, *members: str | bytes) -> int:
        zset = self.zsets.get(key, {})
        removed = 0
        for member in members:
            name = member.decode() if isinstance(member, bytes) else member
            if zset.pop(name, None) is not None:
                removed += 1
        return removed

    def queued(self, key: str) -> list[str]:
        return list(self.lists.get(key, []))


class FakeRoster:
    """Reviewer roster with a fixed, mutable member list."""

    def __init__(self, reviewers: list[Reviewer] | None = None) -> None:
        self.reviewers = list(reviewers or [])

    async def active_reviewers(self, session: AsyncSession) -> list[Reviewer]:
        del session
        return list(self.reviewers)


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> FakeRedis:
    fake = FakeRedis()

    def _fake_redis(*, redis_url: str | None = None) -> FakeRedis:
        del redis_url
        return fake

    monkeypatch.setattr("intake_board.services.queue._redis_client", _fake_redis)
    return fake


async def _make_engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    return engine


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = await _make_engine()
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with session_maker() as session:
        yield session


async def make_user(
    session: AsyncSession,
    *,
    name: str,
    role: UserRole = UserRole.APPLICANT,
    email: str | None = None,
    is_active: bool = True,
) -> User:
    user = User(
        name=name,
        email=email if email is not None else f"{name.lower().replace(' ', '.')}@example.org",
        role=role,
        is_active=is_active,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


def reviewer(name: str, reviewer_id: UUID | None = None) -> Reviewer:
    return Reviewer(id=reviewer_id or uuid4(), name=name)


NARRATIVE = (
    "I want to rebuild my strength after a long recovery and need support to keep "
    "a steady routine with a trainer."
)


def valid_profile(**overrides: object) -> dict[str, object]:
    profile: dict[str, object] = {
        "first_name": "Jordan",
        "last_name": "Rivera",
        "email": "jordan@example.org",
        "phone_number": "555-0100",
        "funding_types_requested": ["gym_membership"],
        "estimated_monthly_cost": Decimal("150.00"),
        "program_duration_months": 12,
        "personal_statement": NARRATIVE,
        "expected_benefits": NARRATIVE,
        "commitment_statement": NARRATIVE,
    }
    profile.update(overrides)
    return profile


async def draft_application(session: AsyncSession, applicant_id: UUID) -> Application:
    result = await applications.create_application(
        session,
        applicant_id=applicant_id,
        profile=valid_profile(),
    )
    return result.unwrap()


async def submitted_application(
    session: AsyncSession,
    applicant_id: UUID,
    roster: FakeRoster,
) -> Application:
    draft = await draft_application(session, applicant_id)
    result = await applications.submit_application(
        session,
        application_id=cast(int, draft.id),
        applicant_id=applicant_id,
        roster=roster,
    )
    return result.unwrap()


async def application_in_review(
    session: AsyncSession,
    applicant_id: UUID,
    roster: FakeRoster,
) -> Application:
    submitted = await submitted_application(session, applicant_id, roster)
    result = await applications.start_review_process(
        session,
        application_id=cast(int, submitted.id),
        roster=roster,
    )
    return result.unwrap()
