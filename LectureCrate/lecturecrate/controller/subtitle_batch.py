from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from enum import StrEnum
from threading import Event

from ..core.models import (
    BatchSubtitleResult,
    Notice,
    NoticeCategory,
    NoticeLevel,
    SubtitleFormat,
    SubtitleJob,
    normalize_subtitle_format,
)
from ..core.subtitle_service import SubtitleBackend
from .batch_jobs import build_subtitle_jobs, build_subtitle_requests
from .catalog import CatalogState
from .error_policy import validation_notice
from .selection import selected_sessions

SUBTITLE_RESULT_TITLE = "Subtitle download complete"
SUBTITLE_FAILURE_TITLE = "Subtitle download failed"
NOTHING_SELECTED_TITLE = "Select at least one session"


class SubtitleBatchPhase(StrEnum):
    IDLE = "idle"
    REQUESTING = "requesting"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class SubtitleDialogState:
    visible: bool = False
    busy: bool = False
    format: str = SubtitleFormat.SRT.value


@dataclass(frozen=True, slots=True)
class SubtitleLaunch:
    dialog: SubtitleDialogState
    jobs: tuple[SubtitleJob, ...] = ()
    notices: tuple[Notice, ...] = ()


@dataclass(frozen=True, slots=True)
class SubtitleBatchOutcome:
    phase: str
    requested: int
    notice: Notice
    result: BatchSubtitleResult | None = None
    error: str = ""


def open_dialog(dialog: SubtitleDialogState, catalog: CatalogState) -> tuple[SubtitleDialogState, tuple[Notice, ...]]:
    if not selected_sessions(catalog.target_list, catalog.target_selection):
        return dialog, (validation_notice(NOTHING_SELECTED_TITLE),)
    return replace(dialog, visible=True), ()


def close_dialog(dialog: SubtitleDialogState) -> SubtitleDialogState:
    if dialog.busy:
        return dialog
    return replace(dialog, visible=False)


def choose_format(dialog: SubtitleDialogState, format_choice: str) -> SubtitleDialogState:
    return replace(dialog, format=normalize_subtitle_format(format_choice, default=dialog.format))


def begin_download(dialog: SubtitleDialogState, catalog: CatalogState) -> SubtitleLaunch:
    sessions = selected_sessions(catalog.target_list, catalog.target_selection)
    if not sessions:
        return SubtitleLaunch(dialog=dialog, notices=(validation_notice(NOTHING_SELECTED_TITLE),))
    jobs = build_subtitle_jobs(build_subtitle_requests(sessions), dialog.format)
    return SubtitleLaunch(dialog=replace(dialog, busy=True), jobs=jobs)


def finish_download(dialog: SubtitleDialogState) -> SubtitleDialogState:
    return replace(dialog, visible=False, busy=False)


def reconcile_result(result: BatchSubtitleResult, requested: int) -> BatchSubtitleResult:
    # Sessions the backend did not account for count as failed.
    success = max(0, min(int(result.success), requested))
    failed = requested - success
    if success == result.success and failed == result.failed:
        return result
    return BatchSubtitleResult(success=success, failed=failed, errors=result.errors)


def outcome_notice(result: BatchSubtitleResult) -> Notice:
    if result.failed == 0:
        return Notice(
            level=NoticeLevel.SUCCESS.value,
            category=NoticeCategory.OUTCOME.value,
            title=SUBTITLE_RESULT_TITLE,
            description=f"Downloaded {result.success} subtitle file(s)",
        )
    return Notice(
        level=NoticeLevel.WARNING.value,
        category=NoticeCategory.OUTCOME.value,
        title=SUBTITLE_RESULT_TITLE,
        description=f"{result.success} succeeded, {result.failed} failed",
    )


def failure_notice(message: str) -> Notice:
    return Notice(
        level=NoticeLevel.ERROR.value,
        category=NoticeCategory.REMOTE.value,
        title=SUBTITLE_FAILURE_TITLE,
        description=str(message or ""),
    )


class SubtitleBatchExecutor:
    """Runs one subtitle batch as a single backend call.

    ``Idle -> Requesting -> Completed | Failed -> Idle``. An empty batch never
    leaves ``Idle``.
    """

    def __init__(
        self,
        backend: SubtitleBackend,
        *,
        on_phase: Callable[[str], None] | None = None,
    ) -> None:
        self._backend = backend
        self._on_phase = on_phase
        self._phase = SubtitleBatchPhase.IDLE.value

    @property
    def phase(self) -> str:
        return self._phase

    def _enter(self, phase: SubtitleBatchPhase) -> None:
        self._phase = phase.value
        if self._on_phase is not None:
            self._on_phase(phase.value)

    def execute(
        self,
        jobs: Sequence[SubtitleJob],
        *,
        stop_event: Event | None = None,
        log_cb: Callable[[str], None] | None = None,
    ) -> SubtitleBatchOutcome:
        if not jobs:
            return SubtitleBatchOutcome(
                phase=SubtitleBatchPhase.IDLE.value,
                requested=0,
                notice=validation_notice(NOTHING_SELECTED_TITLE),
            )
        formats = {job.format for job in jobs}
        if len(formats) != 1:
            raise ValueError("A subtitle batch must use a single format.")
        format_choice = formats.pop()
        requests = [job.request for job in jobs]
        self._enter(SubtitleBatchPhase.REQUESTING)
        try:
            raw_result = self._backend.download_subtitles(
                requests,
                format_choice,
                stop_event=stop_event,
                log_cb=log_cb,
            )
        except Exception as exc:
            self._enter(SubtitleBatchPhase.FAILED)
            outcome = SubtitleBatchOutcome(
                phase=SubtitleBatchPhase.FAILED.value,
                requested=len(requests),
                notice=failure_notice(str(exc)),
                error=str(exc),
            )
        else:
            result = reconcile_result(raw_result, len(requests))
            self._enter(SubtitleBatchPhase.COMPLETED)
            outcome = SubtitleBatchOutcome(
                phase=SubtitleBatchPhase.COMPLETED.value,
                requested=len(requests),
                notice=outcome_notice(result),
                result=result,
            )
        finally:
            self._enter(SubtitleBatchPhase.IDLE)
        return outcome
