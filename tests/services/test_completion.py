"""Tests for CompletionAggregator.

Course c1 = m1 [a1, a2] -> m2 [a3] unless a test builds its own.
"""

from __future__ import annotations

import pytest

from app.models.course import Activity, Course, Module
from app.models.progress import ProgressRecord
from app.services.completion import CompletionAggregator
from app.services.curriculum import CurriculumError
from app.services.progress_collection import ProgressCollection
from tests.conftest import record

M1 = Module(tag="m1", title="M1", activities=(Activity("a1", "A1"), Activity("a2", "A2")))
M2 = Module(tag="m2", title="M2", activities=(Activity("a3", "A3"),))
C1 = Course(tag="c1", title="C1", modules=(M1, M2))


def _aggregator(*records: ProgressRecord, course_tag: str = "c1") -> CompletionAggregator:
    return CompletionAggregator(ProgressCollection.from_records(course_tag, records))


# ---- module completion ----


def test_module_finished_only_when_every_activity_is() -> None:
    """alice finished all of m1; course is not finished while m2 is open."""
    agg = _aggregator(record("alice", "c1", "m1", "a1"), record("alice", "c1", "m1", "a2"))
    assert agg.module_completion(C1, M1).finished == ("alice",)
    assert agg.course_completion(C1).finished == ()
    assert agg.course_completion(C1).not_finished == ("alice",)


def test_partial_module_is_not_finished() -> None:
    agg = _aggregator(record("ada", "c1", "m1", "a1"), record("bob", "c1", "m1", "a2"))
    stat = agg.module_completion(C1, M1)
    assert stat.finished == ()
    assert stat.not_finished == ("ada", "bob")


def test_completion_order_does_not_matter() -> None:
    agg = _aggregator(record("ada", "c1", "m1", "a2"), record("ada", "c1", "m1", "a1"))
    assert agg.module_completion(C1, M1).finished == ("ada",)


def test_module_level_record_alone_does_not_finish_a_module() -> None:
    agg = _aggregator(record("ada", "c1", "m1"))
    stat = agg.module_completion(C1, M1)
    assert stat.finished == ()
    assert stat.not_finished == ("ada",)


def test_module_without_activities_has_nobody_finished() -> None:
    empty = Module(tag="m0", title="M0")
    course = Course(tag="c1", title="C1", modules=(empty,))
    agg = _aggregator(record("ada", "c1", "m0"))
    stat = agg.module_completion(course, empty)
    assert stat.finished == ()
    assert stat.not_finished == ("ada",)


# ---- course completion ----


def test_course_finished_when_every_module_is() -> None:
    agg = _aggregator(
        record("bob", "c1", "m1", "a1"),
        record("bob", "c1", "m1", "a2"),
        record("bob", "c1", "m2", "a3"),
        record("alice", "c1", "m1", "a1"),
    )
    stat = agg.course_completion(C1)
    assert stat.unit_tag == "c1"
    assert stat.finished == ("bob",)
    assert stat.not_finished == ("alice",)


def test_course_without_modules_has_nobody_finished() -> None:
    course = Course(tag="c1", title="C1")
    agg = _aggregator(record("ada", "c1", "m1", "a1"))
    assert agg.course_completion(course).finished == ()


def test_course_completion_reuses_given_module_stats() -> None:
    agg = _aggregator(record("ada", "c1", "m2", "a3"))
    stats = agg.module_completions(C1)
    assert list(stats) == ["m1", "m2"]
    assert agg.course_completion(C1, stats) == agg.course_completion(C1)


def test_course_completion_rejects_incomplete_module_stats() -> None:
    agg = _aggregator(record("ada", "c1", "m2", "a3"))
    stats = {"m1": agg.module_completion(C1, M1)}
    with pytest.raises(CurriculumError):
        agg.course_completion(C1, stats)


def test_course_finished_is_subset_of_every_module_finished() -> None:
    agg = _aggregator(
        record("ada", "c1", "m1", "a1"),
        record("ada", "c1", "m1", "a2"),
        record("ada", "c1", "m2", "a3"),
        record("bob", "c1", "m2", "a3"),
        record("cid", "c1", "m1", "a1"),
        record("cid", "c1", "m1", "a2"),
    )
    course_finished = set(agg.course_completion(C1).finished)
    for module in C1.modules:
        assert course_finished <= set(agg.module_completion(C1, module).finished)


def test_duplicate_records_do_not_change_the_result() -> None:
    once = _aggregator(record("ada", "c1", "m2", "a3"))
    twice = _aggregator(record("ada", "c1", "m2", "a3"), record("ada", "c1", "m2", "a3"))
    assert once.module_completion(C1, M2) == twice.module_completion(C1, M2)


# ---- partition properties ----


def test_partition_covers_universe_without_overlap() -> None:
    agg = _aggregator(
        record("cid", "c1", "m1", "a1"),
        record("ada", "c1", "m2", "a3"),
        record("bob", "c1", "m1", "a2"),
    )
    for module in C1.modules:
        stat = agg.module_completion(C1, module)
        assert not set(stat.finished) & set(stat.not_finished)
        assert set(stat.finished) | set(stat.not_finished) == {"ada", "bob", "cid"}


def test_results_are_sorted_and_deterministic() -> None:
    records = (
        record("zoe", "c1", "m2", "a3"),
        record("ada", "c1", "m2", "a3"),
        record("mia", "c1", "m1", "a1"),
    )
    first = _aggregator(*records).module_completion(C1, M2)
    second = _aggregator(*reversed(records)).module_completion(C1, M2)
    assert first == second
    assert first.finished == ("ada", "zoe")
    assert first.not_finished == ("mia",)


def test_activity_completion() -> None:
    agg = _aggregator(record("ada", "c1", "m1", "a2"), record("bob", "c1", "m1", "a1"))
    stat = agg.activity_completion(C1, M1, M1.activities[1])
    assert stat.unit_tag == "a2"
    assert stat.finished == ("ada",)
    assert stat.not_finished == ("bob",)


def test_empty_collection_yields_empty_partitions() -> None:
    stat = _aggregator().course_completion(C1)
    assert stat.finished == ()
    assert stat.not_finished == ()


# ---- misuse ----


def test_rejects_course_other_than_the_collection() -> None:
    agg = _aggregator(course_tag="c2")
    with pytest.raises(CurriculumError):
        agg.course_completion(C1)


def test_rejects_module_outside_course() -> None:
    stray = Module(tag="m9", title="M9", activities=(Activity("a9", "A9"),))
    with pytest.raises(CurriculumError):
        _aggregator().module_completion(C1, stray)


def test_rejects_activity_outside_module() -> None:
    with pytest.raises(CurriculumError):
        _aggregator().activity_completion(C1, M1, Activity("a3", "A3"))
