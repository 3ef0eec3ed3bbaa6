"""SQLAlchemy table definitions.

Progress is not stored in a dedicated table: records live in the generic
`triples` table, keyed by predicate, so other subsystems can keep their
own vocabularies alongside it.  Repos convert rows to domain dataclasses.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.engine import Base


class TripleRow(Base):
    __tablename__ = "triples"
    __table_args__ = (Index("ix_triples_property_resource", "property", "resource"),)

    # Monotonic id gives a stable "first matching record" order.
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    resource: Mapped[str] = mapped_column(String(255), nullable=False)
    property: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
