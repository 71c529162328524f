from __future__ import annotations

from conftest import make_course, make_session
from lecturecrate.controller import selection


def test_set_checked_replaces_whole_set_and_drops_unknown_keys():
    rows = (make_session(1), make_session(2), make_session(3))
    checked = selection.set_checked(rows, [2, 3, 99], selection.session_key)
    assert checked == frozenset({2, 3})


def test_selected_rows_keep_list_order():
    rows = (make_session(5), make_session(1), make_session(3))
    chosen = selection.selected_sessions(rows, frozenset({3, 5}))
    assert [item.sub_id for item in chosen] == [5, 3]


def test_selected_courses():
    courses = (make_course(10), make_course(20, "Optics"))
    assert selection.selected_courses(courses, frozenset({20})) == (courses[1],)


def test_selection_summary_counts_pages():
    rows = (make_session(1, pages=3), make_session(2, pages=4), make_session(3, pages=0))
    summary = selection.selection_summary(rows, frozenset({1, 3}))
    assert summary.selected == 2
    assert summary.pages == 3


def test_without_keys_drops_submitted_rows():
    rows = (make_session(1), make_session(2))
    remaining = selection.without_keys(rows, frozenset({1}), selection.session_key)
    assert [item.sub_id for item in remaining] == [2]
