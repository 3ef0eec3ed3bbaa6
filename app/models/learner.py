from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Learner:
    """Authenticated identity extracted from a validated JWT.

    learner_id is the JWT subject and the subject of every progress triple
    written for this learner.  roles are platform roles (admin, user); the
    progress write policy and dashboard access are decided from them.
    """

    learner_id: str
    roles: frozenset[str] = frozenset()

    def is_admin(self) -> bool:
        return "admin" in self.roles


@dataclass(frozen=True, slots=True)
class LearnerEntry:
    """Display entity for a learner on progress dashboards."""

    learner_id: str
    display_name: str
    is_placeholder: bool = False

    @staticmethod
    def placeholder(learner_id: str) -> LearnerEntry:
        # No directory entry: show the raw learner id instead of dropping
        # the learner from the dashboard.
        return LearnerEntry(
            learner_id=learner_id, display_name=learner_id, is_placeholder=True
        )
