"""Learner display lookup.

Dashboards show a display name per learner.  Names come from the user
directory owned by the auth service; this service only reads them, from
the in-memory directory seeded at startup from LEARNERS_PATH.  A learner
missing from it is shown with a placeholder entry, never dropped.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, TypeAdapter

from app.models.learner import LearnerEntry

logger = logging.getLogger(__name__)


class LearnerDirectory(Protocol):
    def get_entry(self, learner_id: str) -> LearnerEntry | None: ...


class InMemoryLearnerDirectory:
    def __init__(self) -> None:
        self._entries: dict[str, LearnerEntry] = {}

    def get_entry(self, learner_id: str) -> LearnerEntry | None:
        return self._entries.get(learner_id)

    def add(self, entry: LearnerEntry) -> None:
        self._entries[entry.learner_id] = entry

    def clear(self) -> None:
        self._entries.clear()


# --- JSON seed file (LEARNERS_PATH) ---


class _LearnerIn(BaseModel):
    learner_id: str
    display_name: str


_LEARNERS_ADAPTER = TypeAdapter(list[_LearnerIn])


def load_learner_file(directory: InMemoryLearnerDirectory, path: str | Path) -> int:
    """Load [{"learner_id": ..., "display_name": ...}, ...].  Returns the count.

    Raises pydantic.ValidationError on a malformed file.
    """
    learners = _LEARNERS_ADAPTER.validate_json(Path(path).read_text(encoding="utf-8"))
    for learner in learners:
        directory.add(
            LearnerEntry(learner_id=learner.learner_id, display_name=learner.display_name)
        )
    logger.info("Loaded %d learner(s) from %s", len(learners), path)
    return len(learners)
