from __future__ import annotations

from datetime import date

from conftest import make_course, make_session
from lecturecrate.controller import catalog
from lecturecrate.controller.batch_jobs import build_subtitle_jobs, build_subtitle_requests
from lecturecrate.controller.subtitle_batch import SubtitleBatchExecutor
from lecturecrate.core.classroom_api import ClassroomApiError
from lecturecrate.core.models import BatchSubtitleResult
from lecturecrate.workers.catalog_worker import CatalogResponse, CatalogWorker
from lecturecrate.workers.subtitle_worker import SubtitleWorker


class _Source:
    def __init__(self, *, error=None):
        self.error = error
        self.calls = []

    def get_range_subs(self, start_at, end_at):
        self.calls.append(("range", start_at, end_at))
        if self.error:
            raise self.error
        return [make_session(1), make_session(2)]

    def get_course_all_sub_ppts(self, course_ids):
        self.calls.append(("courses", tuple(course_ids)))
        return [make_session(3, course_id=course_ids[0])]

    def search_courses(self, course_name, teacher_name):
        self.calls.append(("search", course_name, teacher_name))
        return [make_course(10)]


def _collect(worker):
    summaries, finished = [], []
    worker.finishedSummary.connect(summaries.append)
    worker.finished.connect(lambda: finished.append(True))
    worker.run()
    assert finished == [True]
    return summaries


def test_catalog_worker_emits_rows(qt_app):
    transition = catalog.fetch_mine(catalog.initial_state(today=date(2024, 3, 13)))
    source = _Source()
    (response,) = _collect(CatalogWorker(source, transition.request))
    assert isinstance(response, CatalogResponse)
    assert response.ok
    assert [item.sub_id for item in response.rows] == [1, 2]
    assert source.calls == [("range", "2024-03-11", "2024-03-17")]


def test_catalog_worker_dispatches_search(qt_app):
    state = catalog.change_source_mode(catalog.initial_state(today=date(2024, 3, 13)), "all").state
    transition = catalog.search_courses(catalog.set_search_terms(state, "optics", "ada"))
    source = _Source()
    (response,) = _collect(CatalogWorker(source, transition.request))
    assert source.calls == [("search", "optics", "ada")]
    assert response.rows[0].course_id == 10


def test_catalog_worker_reports_errors(qt_app):
    transition = catalog.fetch_mine(catalog.initial_state(today=date(2024, 3, 13)))
    worker = CatalogWorker(_Source(error=ClassroomApiError("HTTP 500")), transition.request)
    errors = []
    worker.errorRaised.connect(lambda key, message: errors.append(message))
    (response,) = _collect(worker)
    assert not response.ok
    assert response.error == "HTTP 500"
    assert errors == ["HTTP 500"]
    applied = catalog.apply_failure(transition.state, response.request, response.error)
    assert not applied.state.loading_target


class _Backend:
    def download_subtitles(self, subs, format_choice, *, stop_event=None, log_cb=None):
        if log_cb:
            log_cb(f"saving {len(subs)} file(s)")
        return BatchSubtitleResult(success=len(subs), failed=0)


def test_subtitle_worker_emits_outcome_and_logs(qt_app):
    jobs = build_subtitle_jobs(build_subtitle_requests((make_session(1), make_session(2))), "srt")
    worker = SubtitleWorker(SubtitleBatchExecutor(_Backend()), list(jobs))
    logs = []
    worker.logChanged.connect(logs.append)
    (outcome,) = _collect(worker)
    assert outcome.phase == "completed"
    assert outcome.result.success == 2
    assert logs == ["saving 2 file(s)"]
