from __future__ import annotations

from datetime import date

from conftest import make_session
from lecturecrate.controller import catalog
from lecturecrate.controller.batch_jobs import (
    build_slide_jobs,
    build_subtitle_jobs,
    build_subtitle_requests,
    slide_summary_notice,
)
from lecturecrate.core.models import NoticeCategory, NoticeLevel, SlideDownloadSummary


class _Renderer:
    def render(self, image_paths, output_path):
        return output_path


def _state_with(*sessions, selected):
    state = catalog.initial_state(today=date(2024, 3, 13))
    state = catalog.replace_target_list(state, sessions, select_every_row=False)
    return catalog.set_target_checked(state, selected)


def test_no_selection_emits_nothing():
    state = _state_with(make_session(1), make_session(2), selected=[])
    submission = build_slide_jobs(state, _Renderer())
    assert submission.jobs == ()
    assert submission.state == state
    (notice,) = submission.notices
    assert notice.category == NoticeCategory.VALIDATION.value


def test_submitted_rows_are_consumed():
    sessions = (make_session(1), make_session(2), make_session(3))
    renderer = _Renderer()
    submission = build_slide_jobs(_state_with(*sessions, selected=[1, 3]), renderer)
    assert [job.session.sub_id for job in submission.jobs] == [1, 3]
    assert all(job.renderer is renderer and job.kind == "slides" for job in submission.jobs)
    assert len({job.job_id for job in submission.jobs}) == 2
    assert [item.sub_id for item in submission.state.target_list] == [2]
    assert submission.state.target_selection == frozenset()
    assert submission.notices == ()


def test_slide_jobs_without_renderer_keep_images_only():
    submission = build_slide_jobs(_state_with(make_session(1), selected=[1]), None)
    assert submission.jobs[0].renderer is None


def test_subtitle_jobs_carry_request_fields_and_format():
    session = make_session(7)
    requests = build_subtitle_requests((session,))
    assert requests[0].sub_id == 7
    assert requests[0].course_name == session.course_name
    assert requests[0].sub_name == session.sub_name
    assert requests[0].path == session.path
    jobs = build_subtitle_jobs(requests, "VTT")
    assert jobs[0].format == "vtt"
    assert jobs[0].kind == "subtitles"


def test_slide_summary_notice_levels():
    ok = slide_summary_notice(SlideDownloadSummary(total=2, completed=2, failed=0, cancelled=0))
    assert ok.level == NoticeLevel.SUCCESS.value
    assert ok.description == "Saved 2 slide deck(s)"
    partial = slide_summary_notice(SlideDownloadSummary(total=3, completed=1, failed=1, cancelled=1))
    assert partial.level == NoticeLevel.WARNING.value
    assert partial.description == "1 saved, 1 failed, 1 cancelled"
