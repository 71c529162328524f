from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from threading import Event
from typing import Protocol

from .classroom_api import TranscriptSource
from .models import BatchSubtitleResult, SubtitleRequest, normalize_subtitle_format
from .paths import session_output_file
from .subtitle import parse_transcript, render_subtitle, subtitle_file_suffix

LogCallback = Callable[[str], None]


class SubtitleBackend(Protocol):
    def download_subtitles(
        self,
        subs: Sequence[SubtitleRequest],
        format_choice: str,
        *,
        stop_event: Event | None = None,
        log_cb: LogCallback | None = None,
    ) -> BatchSubtitleResult: ...


class SubtitleService:
    def __init__(self, source: TranscriptSource, save_path: str) -> None:
        self._source = source
        self._save_path = str(save_path or "").strip()

    def set_save_path(self, save_path: str) -> None:
        self._save_path = str(save_path or "").strip()

    def _ensure_save_root(self) -> Path:
        if not self._save_path:
            raise RuntimeError("No download folder is configured.")
        root = Path(self._save_path).expanduser()
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RuntimeError(f"Unable to create download folder {root}: {exc}") from exc
        return root

    def download_one(self, sub: SubtitleRequest, format_choice: str) -> Path:
        subtitle = parse_transcript(self._source.fetch_transcript(sub.sub_id))
        if len(subtitle) == 0:
            raise RuntimeError("No transcript is available for this session.")
        target = session_output_file(
            self._save_path,
            sub.path or sub.course_name,
            sub.sub_name or str(sub.sub_id),
            subtitle_file_suffix(format_choice),
        )
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(render_subtitle(subtitle, format_choice), encoding="utf-8")
        return target

    def download_subtitles(
        self,
        subs: Sequence[SubtitleRequest],
        format_choice: str,
        *,
        stop_event: Event | None = None,
        log_cb: LogCallback | None = None,
    ) -> BatchSubtitleResult:
        normalized_format = normalize_subtitle_format(format_choice)
        self._ensure_save_root()
        success = 0
        errors: list[str] = []
        for sub in subs:
            if stop_event is not None and stop_event.is_set():
                errors.append(f"[{sub.sub_id}] cancelled")
                continue
            try:
                target = self.download_one(sub, normalized_format)
            except (RuntimeError, OSError, ValueError) as exc:
                message = f"[{sub.sub_id}] {sub.course_name} {sub.sub_name}: {exc}"
                errors.append(message)
                if log_cb:
                    log_cb(f"Subtitle failed: {message}")
                continue
            success += 1
            if log_cb:
                log_cb(f"Subtitle saved: {target}")
        return BatchSubtitleResult(success=success, failed=len(errors), errors=tuple(errors))
