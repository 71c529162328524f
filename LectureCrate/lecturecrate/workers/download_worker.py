from __future__ import annotations

from .base_worker import BaseWorker
from ..core.models import SlideDownloadSummary, SlideJob
from ..core.slide_service import SlideService


class SlideDownloadWorker(BaseWorker):
    def __init__(self, service: SlideService, jobs: list[SlideJob], concurrency: int) -> None:
        super().__init__()
        self._service = service
        self._jobs = list(jobs)
        self._concurrency = max(1, int(concurrency))

    def run(self) -> None:
        def execute() -> SlideDownloadSummary:
            return self._service.run_batch(
                self._jobs,
                self._concurrency,
                self._stop_event,
                progress_cb=self._on_progress,
                status_cb=self._on_status,
                log_cb=self.emit_log,
            )

        def on_result(summary: SlideDownloadSummary) -> None:
            self.finishedSummary.emit(summary)

        def on_error(exc: Exception) -> None:
            self.errorRaised.emit("global", str(exc))
            self.finishedSummary.emit(
                SlideDownloadSummary(
                    total=len(self._jobs),
                    completed=0,
                    failed=len(self._jobs),
                    cancelled=0,
                    results=[],
                )
            )

        self.run_guarded(
            execute=execute,
            on_result=on_result,
            on_error=on_error,
        )

    def _on_status(self, job_id: str, state: str) -> None:
        self.statusChanged.emit(str(job_id or ""), str(state or ""))

    def _on_progress(self, job_id: str, percent: float, message: str) -> None:
        self.progressChanged.emit(str(job_id or ""), float(percent), str(message or ""))
