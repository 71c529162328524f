from __future__ import annotations

from datetime import date

from conftest import make_course, make_session
from lecturecrate.controller import catalog
from lecturecrate.core.models import NoticeCategory, NoticeLevel

TODAY = date(2024, 3, 13)


def _mine_state_with_targets(*sessions):
    state = catalog.initial_state(granularity="week", today=TODAY)
    transition = catalog.fetch_mine(state)
    return catalog.apply_result(transition.state, transition.request, sessions).state


def _all_mode_with_courses(*courses):
    state = catalog.change_source_mode(catalog.initial_state(today=TODAY), "all").state
    state = catalog.set_search_terms(state, "signals", "")
    transition = catalog.search_courses(state)
    return catalog.apply_result(transition.state, transition.request, courses).state


def test_initial_state_is_empty_week_window():
    state = catalog.initial_state(today=TODAY)
    assert state.granularity == "week"
    assert state.source_mode == "mine"
    assert state.target_list == ()
    assert not state.loading_source and not state.loading_target


def test_fetch_mine_issues_range_request_for_window():
    transition = catalog.fetch_mine(catalog.initial_state(today=TODAY))
    request = transition.request
    assert request.kind == catalog.CatalogRequestKind.RANGE_SUBS.value
    assert (request.start_at, request.end_at) == ("2024-03-11", "2024-03-17")
    assert transition.state.loading_target
    assert transition.state.target_request_id == request.request_id


def test_fetch_mine_success_selects_every_row():
    sessions = (make_session(1), make_session(2, pages=0))
    state = _mine_state_with_targets(*sessions)
    assert state.target_list == sessions
    assert state.target_selection == frozenset({1, 2})
    assert not state.loading_target


def test_change_granularity_reanchors_to_today_and_refetches():
    state = catalog.initial_state(granularity="day", today=date(2024, 1, 2))
    transition = catalog.change_granularity(state, "month", today=TODAY)
    assert transition.state.window.start_at == date(2024, 3, 1)
    assert transition.state.window.end_at == date(2024, 3, 31)
    assert transition.request.start_at == "2024-03-01"


def test_change_anchor_in_all_mode_does_not_fetch():
    state = catalog.change_source_mode(catalog.initial_state(today=TODAY), "all").state
    transition = catalog.change_anchor(state, date(2024, 4, 3))
    assert transition.request is None
    assert transition.state.window.start_at == date(2024, 4, 1)


def test_change_day_range_fetches_swapped_range():
    transition = catalog.change_day_range(catalog.initial_state(today=TODAY), date(2024, 3, 9), date(2024, 3, 2))
    assert (transition.request.start_at, transition.request.end_at) == ("2024-03-02", "2024-03-09")


def test_switching_mode_clears_lists_and_selections():
    state = _mine_state_with_targets(make_session(1), make_session(2))
    transition = catalog.change_source_mode(state, "all")
    cleared = transition.state
    assert cleared.source_list == () and cleared.target_list == ()
    assert cleared.source_selection == frozenset() and cleared.target_selection == frozenset()
    assert transition.request is None

    back = catalog.change_source_mode(cleared, "mine")
    assert back.state.target_list == ()
    assert back.request.kind == catalog.CatalogRequestKind.RANGE_SUBS.value


def test_empty_search_is_rejected_locally():
    state = catalog.change_source_mode(catalog.initial_state(today=TODAY), "all").state
    state = catalog.set_search_terms(state, "", "   ")
    transition = catalog.search_courses(state)
    assert transition.request is None
    assert transition.state == state
    assert not transition.state.loading_source
    (notice,) = transition.notices
    assert notice.category == NoticeCategory.VALIDATION.value


def test_search_result_starts_with_empty_selection():
    courses = (make_course(10), make_course(20, "Optics"))
    state = _all_mode_with_courses(*courses)
    assert state.source_list == courses
    assert state.source_selection == frozenset()
    assert not state.loading_source


def test_derive_without_selected_course_is_rejected():
    state = _all_mode_with_courses(make_course(10))
    transition = catalog.derive_from_courses(state)
    assert transition.request is None
    assert transition.notices[0].title == "Select at least one course"


def test_derive_keeps_only_sessions_with_slides():
    state = _all_mode_with_courses(make_course(10))
    state = catalog.set_source_checked(state, [10])
    transition = catalog.derive_from_courses(state)
    assert transition.request.course_ids == (10,)
    s1 = make_session(1, pages=3, course_id=10)
    s2 = make_session(2, pages=0, course_id=10)
    result = catalog.apply_result(transition.state, transition.request, (s1, s2))
    assert result.state.target_list == (s1,)
    assert result.state.target_selection == frozenset({1})
    assert result.notices == ()


def test_derive_with_no_slides_reports_empty_result():
    state = catalog.set_source_checked(_all_mode_with_courses(make_course(10)), [10])
    transition = catalog.derive_from_courses(state)
    result = catalog.apply_result(transition.state, transition.request, (make_session(2, pages=0),))
    assert result.state.target_list == ()
    assert not result.state.loading_target
    (notice,) = result.notices
    assert notice.category == NoticeCategory.EMPTY_RESULT.value
    assert notice.level == NoticeLevel.INFO.value


def test_refresh_target_in_all_mode_rederives():
    state = catalog.set_source_checked(_all_mode_with_courses(make_course(10), make_course(11)), [11])
    transition = catalog.refresh_target(state)
    assert transition.request.kind == catalog.CatalogRequestKind.COURSE_SLIDES.value
    assert transition.request.course_ids == (11,)


def test_stale_response_is_ignored():
    state = catalog.initial_state(today=TODAY)
    first = catalog.fetch_mine(state)
    second = catalog.fetch_mine(first.state)
    newest = (make_session(2),)
    state = catalog.apply_result(second.state, second.request, newest).state
    late = catalog.apply_result(state, first.request, (make_session(1),))
    assert late.state == state
    assert late.state.target_list == newest


def test_response_after_mode_switch_is_ignored():
    transition = catalog.fetch_mine(catalog.initial_state(today=TODAY))
    switched = catalog.change_source_mode(transition.state, "all").state
    result = catalog.apply_result(switched, transition.request, (make_session(1),))
    assert result.state.target_list == ()


def test_failure_keeps_list_and_clears_loading():
    state = _mine_state_with_targets(make_session(1))
    transition = catalog.fetch_mine(state)
    result = catalog.apply_failure(transition.state, transition.request, "HTTP 503 Service Unavailable")
    assert result.state.target_list == state.target_list
    assert not result.state.loading_target
    (notice,) = result.notices
    assert notice.category == NoticeCategory.REMOTE.value
    assert notice.title == "Failed to load sessions"
    assert notice.description == "HTTP 503 Service Unavailable"


def test_stale_failure_is_ignored():
    first = catalog.fetch_mine(catalog.initial_state(today=TODAY))
    second = catalog.fetch_mine(first.state)
    result = catalog.apply_failure(second.state, first.request, "boom")
    assert result.notices == ()
    assert result.state.loading_target


def test_set_target_checked_ignores_rows_not_listed():
    state = _mine_state_with_targets(make_session(1), make_session(2))
    state = catalog.set_target_checked(state, [2, 42])
    assert state.target_selection == frozenset({2})


def test_replace_target_list_without_select_all():
    state = catalog.initial_state(today=TODAY)
    state = catalog.replace_target_list(state, (make_session(1),), select_every_row=False)
    assert state.target_selection == frozenset()
