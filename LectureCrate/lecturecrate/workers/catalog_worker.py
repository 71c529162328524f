from __future__ import annotations

from dataclasses import dataclass, field

from .base_worker import BaseWorker
from ..controller.catalog import CatalogRequest, CatalogRequestKind
from ..core.classroom_api import ClassroomSource
from ..core.models import Course, Session


@dataclass(frozen=True, slots=True)
class CatalogResponse:
    request: CatalogRequest
    rows: tuple[Session, ...] | tuple[Course, ...] = field(default_factory=tuple)
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


def run_catalog_request(source: ClassroomSource, request: CatalogRequest) -> list[Session] | list[Course]:
    if request.kind == CatalogRequestKind.RANGE_SUBS.value:
        return source.get_range_subs(request.start_at, request.end_at)
    if request.kind == CatalogRequestKind.COURSE_SLIDES.value:
        return source.get_course_all_sub_ppts(list(request.course_ids))
    if request.kind == CatalogRequestKind.SEARCH_COURSES.value:
        return source.search_courses(request.course_name, request.teacher_name)
    raise ValueError(f"Unsupported catalog request: {request.kind}")


class CatalogWorker(BaseWorker):
    def __init__(self, source: ClassroomSource, request: CatalogRequest) -> None:
        super().__init__()
        self._source = source
        self._request = request

    @property
    def request(self) -> CatalogRequest:
        return self._request

    def run(self) -> None:
        key = str(self._request.request_id)

        def execute() -> list[Session] | list[Course] | None:
            if self.is_cancelled():
                return None
            self.statusChanged.emit(key, "running")
            return run_catalog_request(self._source, self._request)

        def on_result(rows: list[Session] | list[Course] | None) -> None:
            if rows is None:
                return
            self.statusChanged.emit(key, "done")
            self.finishedSummary.emit(CatalogResponse(request=self._request, rows=tuple(rows)))

        def on_error(exc: Exception) -> None:
            self.statusChanged.emit(key, "error")
            self.errorRaised.emit(key, str(exc))
            self.finishedSummary.emit(CatalogResponse(request=self._request, error=str(exc) or type(exc).__name__))

        self.run_guarded(
            execute=execute,
            on_result=on_result,
            on_error=on_error,
        )
