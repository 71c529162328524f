"""Source/target list state for the lecture browser.

Every user intent and every collaborator response is a pure transition from
one :class:`CatalogState` to the next. A transition may ask for at most one
collaborator call (a :class:`CatalogRequest`) and may raise notices. Each
request carries an id; the state remembers the latest id per list and
responses carrying any other id are discarded, so a slow response can never
overwrite a newer one.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date
from enum import StrEnum

from ..core import date_window
from ..core.models import Course, DateGranularity, DateWindow, Notice, Session, SourceRangeMode
from .error_policy import empty_result_notice, remote_failure_notice, validation_notice
from .selection import course_key, select_all, selected_courses, session_key, set_checked


class CatalogRequestKind(StrEnum):
    RANGE_SUBS = "range_subs"
    COURSE_SLIDES = "course_slides"
    SEARCH_COURSES = "search_courses"


_FAILURE_TITLES: dict[str, str] = {
    CatalogRequestKind.RANGE_SUBS.value: "Failed to load sessions",
    CatalogRequestKind.COURSE_SLIDES.value: "Failed to load slide decks",
    CatalogRequestKind.SEARCH_COURSES.value: "Course search failed",
}


@dataclass(frozen=True, slots=True)
class CatalogRequest:
    request_id: int
    kind: str
    start_at: str = ""
    end_at: str = ""
    course_ids: tuple[int, ...] = ()
    course_name: str = ""
    teacher_name: str = ""

    @property
    def targets_source_list(self) -> bool:
        return self.kind == CatalogRequestKind.SEARCH_COURSES.value


@dataclass(frozen=True, slots=True)
class CatalogState:
    window: DateWindow
    source_mode: str = SourceRangeMode.MINE.value
    search_course_name: str = ""
    search_teacher_name: str = ""
    source_list: tuple[Course, ...] = ()
    target_list: tuple[Session, ...] = ()
    source_selection: frozenset[int] = frozenset()
    target_selection: frozenset[int] = frozenset()
    loading_source: bool = False
    loading_target: bool = False
    source_request_id: int = 0
    target_request_id: int = 0
    last_request_id: int = 0

    @property
    def granularity(self) -> str:
        return self.window.granularity


@dataclass(frozen=True, slots=True)
class Transition:
    state: CatalogState
    request: CatalogRequest | None = None
    notices: tuple[Notice, ...] = ()


def initial_state(
    *,
    granularity: str = DateGranularity.WEEK.value,
    today: date | None = None,
) -> CatalogState:
    return CatalogState(window=date_window.current_window(granularity, today=today))


def _issue(state: CatalogState, kind: CatalogRequestKind, **fields: object) -> Transition:
    request_id = state.last_request_id + 1
    request = CatalogRequest(request_id=request_id, kind=kind.value, **fields)
    if request.targets_source_list:
        next_state = replace(
            state,
            last_request_id=request_id,
            source_request_id=request_id,
            loading_source=True,
        )
    else:
        next_state = replace(
            state,
            last_request_id=request_id,
            target_request_id=request_id,
            loading_target=True,
        )
    return Transition(state=next_state, request=request)


def is_current(state: CatalogState, request: CatalogRequest) -> bool:
    if request.targets_source_list:
        return request.request_id == state.source_request_id
    return request.request_id == state.target_request_id


def fetch_mine(state: CatalogState) -> Transition:
    return _issue(
        state,
        CatalogRequestKind.RANGE_SUBS,
        start_at=state.window.start_text,
        end_at=state.window.end_text,
    )


def _with_window(state: CatalogState, window: DateWindow) -> Transition:
    next_state = replace(state, window=window)
    if next_state.source_mode == SourceRangeMode.MINE.value:
        return fetch_mine(next_state)
    return Transition(state=next_state)


def change_granularity(state: CatalogState, granularity: str, *, today: date | None = None) -> Transition:
    # Re-anchors to today; a previously picked anchor is discarded.
    return _with_window(state, date_window.current_window(granularity, today=today))


def change_anchor(state: CatalogState, anchor: date) -> Transition:
    return _with_window(state, date_window.resolve(state.granularity, anchor))


def change_day_range(state: CatalogState, start: date, end: date) -> Transition:
    return _with_window(state, date_window.resolve_day_range(start, end))


def change_source_mode(state: CatalogState, mode: str) -> Transition:
    normalized = SourceRangeMode(str(mode or "").strip().lower()).value
    cleared = replace(
        state,
        source_mode=normalized,
        source_list=(),
        target_list=(),
        source_selection=frozenset(),
        target_selection=frozenset(),
        loading_source=False,
        loading_target=False,
        source_request_id=0,
        target_request_id=0,
    )
    if normalized == SourceRangeMode.MINE.value:
        return fetch_mine(cleared)
    return Transition(state=cleared)


def set_search_terms(state: CatalogState, course_name: str, teacher_name: str) -> CatalogState:
    return replace(
        state,
        search_course_name=str(course_name or ""),
        search_teacher_name=str(teacher_name or ""),
    )


def search_courses(state: CatalogState) -> Transition:
    course_name = state.search_course_name.strip()
    teacher_name = state.search_teacher_name.strip()
    if not course_name and not teacher_name:
        return Transition(state=state, notices=(validation_notice("Enter a course or teacher name to search"),))
    return _issue(
        state,
        CatalogRequestKind.SEARCH_COURSES,
        course_name=course_name,
        teacher_name=teacher_name,
    )


def derive_from_courses(state: CatalogState) -> Transition:
    courses = selected_courses(state.source_list, state.source_selection)
    if not courses:
        return Transition(state=state, notices=(validation_notice("Select at least one course"),))
    return _issue(
        state,
        CatalogRequestKind.COURSE_SLIDES,
        course_ids=tuple(course.course_id for course in courses),
    )


def refresh_target(state: CatalogState) -> Transition:
    if state.source_mode == SourceRangeMode.MINE.value:
        return fetch_mine(state)
    return derive_from_courses(state)


def set_source_checked(state: CatalogState, keys: Iterable[int]) -> CatalogState:
    return replace(state, source_selection=set_checked(state.source_list, keys, course_key))


def set_target_checked(state: CatalogState, keys: Iterable[int]) -> CatalogState:
    return replace(state, target_selection=set_checked(state.target_list, keys, session_key))


def replace_target_list(state: CatalogState, sessions: Sequence[Session], *, select_every_row: bool) -> CatalogState:
    target_list = tuple(sessions)
    selection = select_all(target_list, session_key) if select_every_row else frozenset()
    return replace(state, target_list=target_list, target_selection=selection)


def apply_result(state: CatalogState, request: CatalogRequest, rows: Sequence[Session] | Sequence[Course]) -> Transition:
    if not is_current(state, request):
        return Transition(state=state)
    if request.kind == CatalogRequestKind.SEARCH_COURSES.value:
        next_state = replace(
            state,
            source_list=tuple(rows),
            source_selection=frozenset(),
            loading_source=False,
        )
        return Transition(state=next_state)
    sessions = tuple(rows)
    notices: tuple[Notice, ...] = ()
    if request.kind == CatalogRequestKind.COURSE_SLIDES.value:
        sessions = tuple(item for item in sessions if item.has_slides)
        if not sessions:
            notices = (empty_result_notice("No slide decks found", "None of the selected courses has slides."),)
    next_state = replace_target_list(state, sessions, select_every_row=True)
    return Transition(state=replace(next_state, loading_target=False), notices=notices)


def apply_failure(state: CatalogState, request: CatalogRequest, message: str) -> Transition:
    if not is_current(state, request):
        return Transition(state=state)
    notice = remote_failure_notice(_FAILURE_TITLES.get(request.kind, "Request failed"), message)
    if request.targets_source_list:
        return Transition(state=replace(state, loading_source=False), notices=(notice,))
    return Transition(state=replace(state, loading_target=False), notices=(notice,))
