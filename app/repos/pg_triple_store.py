"""PostgreSQL implementation of TripleStore."""

from __future__ import annotations

import logging

from sqlalchemy import ColumnElement, insert, select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import InstrumentedAttribute

from app.db.tables import TripleRow
from app.repos.triple_store import MatchOp, StoreUnavailableError, Triple

logger = logging.getLogger(__name__)

# Connection-level failures only; anything else is a bug and propagates as is.
_TRANSIENT_ERRORS = (OperationalError, InterfaceError, OSError, TimeoutError)


class PgTripleStore:
    """Satisfies the TripleStore Protocol using PostgreSQL via SQLAlchemy.

    Takes the session factory rather than a session: each call runs in its
    own short transaction, so one instance can serve every request.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def query(
        self,
        subject: str | None,
        predicate: str,
        object_pattern: str,
        *,
        subject_op: MatchOp = MatchOp.EQUALS,
        predicate_op: MatchOp = MatchOp.EQUALS,
        object_op: MatchOp = MatchOp.LIKE,
    ) -> list[Triple]:
        conditions = [
            _compare(TripleRow.property, predicate, predicate_op),
            _compare(TripleRow.value, object_pattern, object_op),
        ]
        if subject is not None:
            conditions.append(_compare(TripleRow.resource, subject, subject_op))

        stmt = (
            select(TripleRow.resource, TripleRow.value)
            .where(*conditions)
            .order_by(TripleRow.id)
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except _TRANSIENT_ERRORS as exc:
            logger.warning("Triple query failed: %s", exc)
            raise StoreUnavailableError(str(exc)) from exc
        return [Triple(resource=r.resource, value=r.value) for r in rows]

    async def insert(self, subject: str, predicate: str, value: str) -> None:
        stmt = insert(TripleRow).values(resource=subject, property=predicate, value=value)
        try:
            async with self._session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        except _TRANSIENT_ERRORS as exc:
            logger.warning("Triple insert failed: %s", exc)
            raise StoreUnavailableError(str(exc)) from exc


def _compare(
    column: InstrumentedAttribute[str], operand: str, op: MatchOp
) -> ColumnElement[bool]:
    if op is MatchOp.LIKE:
        return column.like(operand, escape="\\")
    return column == operand
