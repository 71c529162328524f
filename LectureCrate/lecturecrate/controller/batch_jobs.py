from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, replace

from ..core.models import (
    Notice,
    NoticeCategory,
    NoticeLevel,
    Session,
    SlideDownloadSummary,
    SlideJob,
    SlideRenderer,
    SubtitleJob,
    SubtitleRequest,
    normalize_subtitle_format,
)
from .catalog import CatalogState
from .error_policy import validation_notice
from .selection import selected_sessions, session_key, without_keys

SLIDE_RESULT_TITLE = "Slide download complete"


@dataclass(frozen=True, slots=True)
class SlideSubmission:
    state: CatalogState
    jobs: tuple[SlideJob, ...] = ()
    notices: tuple[Notice, ...] = ()


def _new_job_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def build_slide_jobs(state: CatalogState, renderer: SlideRenderer | None) -> SlideSubmission:
    """Turn the checked target rows into slide jobs and consume them.

    Submitted sessions leave the target list and the target selection is
    emptied; they only come back with a fresh fetch.
    """
    sessions = selected_sessions(state.target_list, state.target_selection)
    if not sessions:
        return SlideSubmission(state=state, notices=(validation_notice("Select at least one session"),))
    jobs = tuple(SlideJob(job_id=_new_job_id("slides"), session=session, renderer=renderer) for session in sessions)
    submitted = frozenset(session_key(session) for session in sessions)
    next_state = replace(
        state,
        target_list=without_keys(state.target_list, submitted, session_key),
        target_selection=frozenset(),
    )
    return SlideSubmission(state=next_state, jobs=jobs)


def subtitle_request_for(session: Session) -> SubtitleRequest:
    return SubtitleRequest(
        sub_id=session.sub_id,
        course_name=session.course_name,
        sub_name=session.sub_name,
        path=session.path,
    )


def build_subtitle_requests(sessions: Sequence[Session]) -> tuple[SubtitleRequest, ...]:
    return tuple(subtitle_request_for(session) for session in sessions)


def build_subtitle_jobs(requests: Sequence[SubtitleRequest], format_choice: str) -> tuple[SubtitleJob, ...]:
    normalized = normalize_subtitle_format(format_choice)
    return tuple(SubtitleJob(job_id=_new_job_id("subtitles"), request=request, format=normalized) for request in requests)


def slide_summary_notice(summary: SlideDownloadSummary) -> Notice:
    if summary.total == 0:
        return Notice(
            level=NoticeLevel.INFO.value,
            category=NoticeCategory.OUTCOME.value,
            title=SLIDE_RESULT_TITLE,
            description="No slide decks were downloaded",
        )
    if summary.completed == summary.total:
        return Notice(
            level=NoticeLevel.SUCCESS.value,
            category=NoticeCategory.OUTCOME.value,
            title=SLIDE_RESULT_TITLE,
            description=f"Saved {summary.completed} slide deck(s)",
        )
    parts = [f"{summary.completed} saved"]
    if summary.failed:
        parts.append(f"{summary.failed} failed")
    if summary.cancelled:
        parts.append(f"{summary.cancelled} cancelled")
    return Notice(
        level=NoticeLevel.WARNING.value,
        category=NoticeCategory.OUTCOME.value,
        title=SLIDE_RESULT_TITLE,
        description=", ".join(parts),
    )
