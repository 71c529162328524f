from __future__ import annotations

from .base_worker import BaseWorker
from ..controller.subtitle_batch import SubtitleBatchExecutor, SubtitleBatchOutcome, SubtitleBatchPhase, failure_notice
from ..core.models import SubtitleJob


class SubtitleWorker(BaseWorker):
    def __init__(self, executor: SubtitleBatchExecutor, jobs: list[SubtitleJob]) -> None:
        super().__init__()
        self._executor = executor
        self._jobs = list(jobs)

    def run(self) -> None:
        def execute() -> SubtitleBatchOutcome:
            return self._executor.execute(
                self._jobs,
                stop_event=self._stop_event,
                log_cb=self.emit_log,
            )

        def on_result(outcome: SubtitleBatchOutcome) -> None:
            self.finishedSummary.emit(outcome)

        def on_error(exc: Exception) -> None:
            self.errorRaised.emit("subtitles", str(exc))
            self.finishedSummary.emit(
                SubtitleBatchOutcome(
                    phase=SubtitleBatchPhase.FAILED.value,
                    requested=len(self._jobs),
                    notice=failure_notice(str(exc)),
                    error=str(exc),
                )
            )

        self.run_guarded(
            execute=execute,
            on_result=on_result,
            on_error=on_error,
        )
