from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Literal, Protocol


class DateGranularity(StrEnum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class SourceRangeMode(StrEnum):
    MINE = "mine"
    ALL = "all"


class SubtitleFormat(StrEnum):
    TXT = "txt"
    TXT_TIMESTAMP = "txt_timestamp"
    SRT = "srt"
    SRT_BILINGUAL = "srt_bilingual"
    VTT = "vtt"


SUBTITLE_FORMAT_LABELS: dict[str, str] = {
    SubtitleFormat.TXT.value: "Plain text (.txt)",
    SubtitleFormat.TXT_TIMESTAMP.value: "Timestamped text (.txt)",
    SubtitleFormat.SRT.value: "SRT subtitles (.srt)",
    SubtitleFormat.SRT_BILINGUAL.value: "Bilingual SRT (.srt)",
    SubtitleFormat.VTT.value: "WebVTT (.vtt)",
}


class NoticeLevel(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class NoticeCategory(StrEnum):
    VALIDATION = "validation"
    REMOTE = "remote"
    EMPTY_RESULT = "empty_result"
    OUTCOME = "outcome"


class SlideJobState(StrEnum):
    QUEUED = "queued"
    DOWNLOADING = "downloading"
    RENDERING = "rendering"
    DONE = "done"
    ERROR = "error"
    CANCELLED = "cancelled"


TERMINAL_SLIDE_JOB_STATES = frozenset(
    {
        SlideJobState.DONE.value,
        SlideJobState.ERROR.value,
        SlideJobState.CANCELLED.value,
    }
)


def normalize_subtitle_format(value: object, *, default: str = SubtitleFormat.SRT.value) -> str:
    candidate = str(value or "").strip().lower()
    try:
        return SubtitleFormat(candidate).value
    except ValueError:
        return default


def normalize_granularity(value: object, *, default: str = DateGranularity.WEEK.value) -> str:
    candidate = str(value or "").strip().lower()
    try:
        return DateGranularity(candidate).value
    except ValueError:
        return default


@dataclass(frozen=True, slots=True)
class Course:
    course_id: int
    course_name: str
    lecturer_name: str = ""


@dataclass(frozen=True, slots=True)
class Session:
    sub_id: int
    course_name: str
    sub_name: str
    lecturer_name: str = ""
    ppt_image_urls: tuple[str, ...] = ()
    path: str = ""
    course_id: int = 0

    @property
    def page_count(self) -> int:
        return len(self.ppt_image_urls)

    @property
    def has_slides(self) -> bool:
        return bool(self.ppt_image_urls)


@dataclass(frozen=True, slots=True)
class DateWindow:
    granularity: str
    start_at: date
    end_at: date

    @property
    def start_text(self) -> str:
        return self.start_at.isoformat()

    @property
    def end_text(self) -> str:
        return self.end_at.isoformat()


@dataclass(frozen=True, slots=True)
class Notice:
    level: str
    category: str
    title: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class SubtitleRequest:
    sub_id: int
    course_name: str
    sub_name: str
    path: str = ""


@dataclass(frozen=True, slots=True)
class BatchSubtitleResult:
    success: int
    failed: int
    errors: tuple[str, ...] = ()


class SlideRenderer(Protocol):
    def render(self, image_paths: list[str], output_path: str) -> str: ...


@dataclass(frozen=True, slots=True)
class SlideJob:
    job_id: str
    session: Session
    renderer: SlideRenderer | None = None
    kind: Literal["slides"] = "slides"


@dataclass(frozen=True, slots=True)
class SubtitleJob:
    job_id: str
    request: SubtitleRequest
    format: str = SubtitleFormat.SRT.value
    kind: Literal["subtitles"] = "subtitles"


Job = SlideJob | SubtitleJob


@dataclass(slots=True)
class SlideDownloadResult:
    job_id: str
    sub_id: int
    state: str
    output_path: str = ""
    pages_saved: int = 0
    pages_skipped: int = 0
    error: str = ""


@dataclass(slots=True)
class SlideDownloadSummary:
    total: int
    completed: int
    failed: int
    cancelled: int
    results: list[SlideDownloadResult] = field(default_factory=list)


@dataclass(slots=True)
class AppConfig:
    schema_version: int
    save_path: str
    to_pdf: bool
    max_concurrent_tasks: int
    enable_image_dedup: bool
    dedup_threshold: int
    api_base_url: str
    request_timeout_seconds: int
    default_granularity: str = DateGranularity.WEEK.value
    subtitle_format: str = SubtitleFormat.SRT.value
    window_geometry: str = ""
