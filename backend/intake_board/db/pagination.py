"""Database-side limit/offset pagination for list endpoints."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from fastapi_pagination.ext.sqlmodel import paginate as _paginate

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession
    from sqlmodel.sql.expression import Select, SelectOfScalar

Transformer = Callable[[Sequence[Any]], Sequence[Any]]


async def paginate(
    session: AsyncSession,
    statement: Select[Any] | SelectOfScalar[Any],
    *,
    transformer: Transformer | None = None,
) -> Any:
    """Count and slice ``statement`` in SQL using the request's page params."""
    return await _paginate(session, statement, transformer=transformer)
