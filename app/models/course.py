"""Curriculum hierarchy: course -> module -> activity.

Two shapes live here:

  *Definition  — what the curriculum lookup returns for one tag: display
                 metadata plus the ordered tags of its children.
  Course/Module/Activity — the resolved, ordered tree the progress
                 services work on (see app.services.curriculum).

Order of children is significant: it is the sequence learners follow and
the chain the completion aggregator intersects along.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ActivityDefinition:
    tag: str
    title: str


@dataclass(frozen=True, slots=True)
class ModuleDefinition:
    tag: str
    title: str
    activity_tags: tuple[str, ...] = ()
    active: bool = True


@dataclass(frozen=True, slots=True)
class CourseDefinition:
    tag: str
    title: str
    module_tags: tuple[str, ...] = ()
    # Scripted flags gate navigation only; completion accounting ignores them.
    activities_scripted: bool = True
    modules_scripted: bool = False


@dataclass(frozen=True, slots=True)
class Activity:
    tag: str
    title: str


@dataclass(frozen=True, slots=True)
class Module:
    tag: str
    title: str
    activities: tuple[Activity, ...] = ()
    active: bool = True

    def has_activity(self, activity_tag: str) -> bool:
        return any(a.tag == activity_tag for a in self.activities)

    def get_activity(self, activity_tag: str) -> Activity | None:
        return next((a for a in self.activities if a.tag == activity_tag), None)

    @property
    def first_activity_tag(self) -> str | None:
        return self.activities[0].tag if self.activities else None


@dataclass(frozen=True, slots=True)
class Course:
    tag: str
    title: str
    modules: tuple[Module, ...] = ()
    activities_scripted: bool = True
    modules_scripted: bool = False

    def has_module(self, module_tag: str) -> bool:
        return any(m.tag == module_tag for m in self.modules)

    def get_module(self, module_tag: str) -> Module | None:
        return next((m for m in self.modules if m.tag == module_tag), None)

    @property
    def first_module_tag(self) -> str | None:
        return self.modules[0].tag if self.modules else None
