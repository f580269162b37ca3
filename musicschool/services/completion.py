"""Completion evaluation over a contract's lesson ledger.

A lesson counts toward completion only while it is available.  Excluded
lessons (is_available=False) appear in neither numerator nor denominator,
so they can never block a contract from completing:

    completed   = available lessons that carry a date
    available   = lessons with is_available=True
    is_complete = available > 0 and completed == available

An empty or fully excluded ledger is never complete.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from musicschool.models.lesson import Lesson


@dataclass(frozen=True, slots=True)
class CompletionSummary:
    completed: int
    available: int
    total: int
    excluded: int
    is_complete: bool
    completion_percentage: float


def evaluate_completion(lessons: Iterable[Lesson]) -> CompletionSummary:
    total = available = completed = 0
    for lesson in lessons:
        total += 1
        if not lesson.is_available:
            continue
        available += 1
        if lesson.date is not None:
            completed += 1

    percentage = round(completed / available * 100, 2) if available > 0 else 0.0
    return CompletionSummary(
        completed=completed,
        available=available,
        total=total,
        excluded=total - available,
        is_complete=available > 0 and completed == available,
        completion_percentage=percentage,
    )


def attendance_label(summary: CompletionSummary) -> str:
    """Display string stored in Contract.attendance_count."""
    return f"{summary.completed}/{summary.available}"


def attendance_dates(lessons: Iterable[Lesson]) -> tuple[date, ...]:
    """Dates of the available, dated lessons in lesson-number order."""
    ordered = sorted(lessons, key=lambda l: l.lesson_number)
    return tuple(
        l.date for l in ordered if l.is_available and l.date is not None
    )
