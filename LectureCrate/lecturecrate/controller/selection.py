from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from ..core.models import Course, Session

Row = TypeVar("Row")
Key = Hashable


def session_key(session: Session) -> int:
    return session.sub_id


def course_key(course: Course) -> int:
    return course.course_id


@dataclass(frozen=True, slots=True)
class SelectionSummary:
    selected: int
    pages: int


def keys_of(rows: Iterable[Row], key: Callable[[Row], Key]) -> frozenset[Key]:
    return frozenset(key(row) for row in rows)


def select_all(rows: Iterable[Row], key: Callable[[Row], Key]) -> frozenset[Key]:
    return keys_of(rows, key)


def set_checked(
    rows: Sequence[Row],
    keys: Iterable[Key],
    key: Callable[[Row], Key],
) -> frozenset[Key]:
    # Whole-set replace; keys without a row in the list are dropped.
    return frozenset(keys) & keys_of(rows, key)


def selected_rows(
    rows: Sequence[Row],
    selection: frozenset[Key],
    key: Callable[[Row], Key],
) -> tuple[Row, ...]:
    return tuple(row for row in rows if key(row) in selection)


def selected_sessions(sessions: Sequence[Session], selection: frozenset[Key]) -> tuple[Session, ...]:
    return selected_rows(sessions, selection, session_key)


def selected_courses(courses: Sequence[Course], selection: frozenset[Key]) -> tuple[Course, ...]:
    return selected_rows(courses, selection, course_key)


def selection_summary(sessions: Sequence[Session], selection: frozenset[Key]) -> SelectionSummary:
    chosen = selected_sessions(sessions, selection)
    return SelectionSummary(selected=len(chosen), pages=sum(item.page_count for item in chosen))


def without_keys(
    rows: Sequence[Row],
    removed: frozenset[Key],
    key: Callable[[Row], Key],
) -> tuple[Row, ...]:
    return tuple(row for row in rows if key(row) not in removed)
