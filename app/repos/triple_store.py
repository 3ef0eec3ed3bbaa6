"""Triple store boundary used to persist progress records.

The store keeps (resource, property, value) triples and answers pattern
queries where each of the three positions is compared with EQUALS or with
SQL LIKE semantics:

    %   any run of characters (including none)
    _   exactly one character
    \\   escapes the following character

Progress records are triples (learner_id, PROGRESS_PREDICATE, payload);
other data may share the store under other predicates.  This module holds
the Protocol both adapters satisfy and the in-memory adapter used in dev
and tests.  The PostgreSQL adapter is in pg_triple_store.py.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol, runtime_checkable


class MatchOp(enum.Enum):
    EQUALS = "="
    LIKE = "LIKE"


@dataclass(frozen=True, slots=True)
class Triple:
    resource: str
    value: str


class StoreUnavailableError(Exception):
    """The store could not be reached or timed out.  Safe to retry."""


@runtime_checkable
class TripleStore(Protocol):
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
        """Return matching triples in insertion order.  None subject = any."""
        ...

    async def insert(self, subject: str, predicate: str, value: str) -> None: ...


def escape_like(text: str) -> str:
    """Escape LIKE metacharacters so `text` only matches itself."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@lru_cache(maxsize=256)
def _like_regex(pattern: str) -> re.Pattern[str]:
    parts: list[str] = []
    chars = iter(pattern)
    for ch in chars:
        if ch == "\\":
            parts.append(re.escape(next(chars, "\\")))
        elif ch == "%":
            parts.append(".*")
        elif ch == "_":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts), re.DOTALL)


def like_matches(value: str, pattern: str) -> bool:
    return _like_regex(pattern).fullmatch(value) is not None


def _matches(value: str, pattern: str, op: MatchOp) -> bool:
    if op is MatchOp.LIKE:
        return like_matches(value, pattern)
    return value == pattern


class InMemoryTripleStore:
    """List-backed store for dev and tests.  Not shared across processes."""

    def __init__(self) -> None:
        self._triples: list[tuple[str, str, str]] = []

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
        return [
            Triple(resource=resource, value=value)
            for resource, prop, value in self._triples
            if (subject is None or _matches(resource, subject, subject_op))
            and _matches(prop, predicate, predicate_op)
            and _matches(value, object_pattern, object_op)
        ]

    async def insert(self, subject: str, predicate: str, value: str) -> None:
        self._triples.append((subject, predicate, value))
