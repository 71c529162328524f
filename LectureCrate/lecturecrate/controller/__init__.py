from .batch_jobs import SlideSubmission, build_slide_jobs, build_subtitle_jobs, build_subtitle_requests, slide_summary_notice
from .catalog import CatalogRequest, CatalogRequestKind, CatalogState, Transition
from .download_runtime import SlideRuntimeState
from .error_policy import classify_remote_error, failure_hint, format_classified_error
from .selection import SelectionSummary, selected_courses, selected_sessions, selection_summary
from .subtitle_batch import (
    SubtitleBatchExecutor,
    SubtitleBatchOutcome,
    SubtitleBatchPhase,
    SubtitleDialogState,
    SubtitleLaunch,
)

__all__ = [
    "CatalogRequest",
    "CatalogRequestKind",
    "CatalogState",
    "SelectionSummary",
    "SlideRuntimeState",
    "SlideSubmission",
    "SubtitleBatchExecutor",
    "SubtitleBatchOutcome",
    "SubtitleBatchPhase",
    "SubtitleDialogState",
    "SubtitleLaunch",
    "Transition",
    "build_slide_jobs",
    "build_subtitle_jobs",
    "build_subtitle_requests",
    "classify_remote_error",
    "failure_hint",
    "format_classified_error",
    "selected_courses",
    "selected_sessions",
    "selection_summary",
    "slide_summary_notice",
]
