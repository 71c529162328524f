from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from .models import SubtitleFormat, normalize_subtitle_format


class TranscriptError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class SubtitleEntry:
    start_time: float
    end_time: float
    text: str
    translation: str | None = None


@dataclass(frozen=True, slots=True)
class Subtitle:
    entries: tuple[SubtitleEntry, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.entries)


def _as_seconds(value: object) -> float:
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return 0.0


def parse_transcript(payload: object) -> Subtitle:
    """Build a subtitle from the platform's transcript payload.

    The payload looks like ``{"code": 0, "msg": ..., "list": [{"all_content": [...]}]}``
    where each content item carries ``BeginSec``, ``EndSec``, ``Text`` and an
    optional ``TransText``. Items without text are dropped.
    """
    if not isinstance(payload, dict):
        raise TranscriptError("Transcript response was not a JSON object.")
    code = payload.get("code")
    if isinstance(code, int) and not isinstance(code, bool) and code != 0:
        message = str(payload.get("msg") or "Unknown error")
        raise TranscriptError(f"API error: {message}")
    items = payload.get("list")
    if not isinstance(items, list) or not items or not isinstance(items[0], dict):
        return Subtitle()
    content = items[0].get("all_content")
    if not isinstance(content, list):
        return Subtitle()
    entries: list[SubtitleEntry] = []
    for item in content:
        if not isinstance(item, dict):
            continue
        text = str(item.get("Text") or "")
        if not text:
            continue
        translation = str(item.get("TransText") or "")
        entries.append(
            SubtitleEntry(
                start_time=_as_seconds(item.get("BeginSec")),
                end_time=_as_seconds(item.get("EndSec")),
                text=text,
                translation=translation or None,
            )
        )
    return Subtitle(entries=tuple(entries))


def format_time_simple(seconds: float) -> str:
    total_secs = int(seconds)
    return f"{total_secs // 60:02d}:{total_secs % 60:02d}"


def _split_millis(seconds: float) -> tuple[int, int, int, int]:
    total_ms = int(seconds * 1000.0)
    total_secs, millis = divmod(total_ms, 1000)
    total_mins, secs = divmod(total_secs, 60)
    hours, mins = divmod(total_mins, 60)
    return hours, mins, secs, millis


def format_time_srt(seconds: float) -> str:
    hours, mins, secs, millis = _split_millis(seconds)
    return f"{hours:02d}:{mins:02d}:{secs:02d},{millis:03d}"


def format_time_vtt(seconds: float) -> str:
    hours, mins, secs, millis = _split_millis(seconds)
    return f"{hours:02d}:{mins:02d}:{secs:02d}.{millis:03d}"


def to_plain_text(subtitle: Subtitle) -> str:
    return "".join(entry.text for entry in subtitle.entries)


def to_timestamped_text(subtitle: Subtitle) -> str:
    return "\n".join(
        f"[{format_time_simple(entry.start_time)} - {format_time_simple(entry.end_time)}] {entry.text}"
        for entry in subtitle.entries
    )


def to_srt(subtitle: Subtitle) -> str:
    return "\n".join(
        f"{index}\n{format_time_srt(entry.start_time)} --> {format_time_srt(entry.end_time)}\n{entry.text}\n"
        for index, entry in enumerate(subtitle.entries, start=1)
    )


def to_srt_bilingual(subtitle: Subtitle) -> str:
    blocks: list[str] = []
    for index, entry in enumerate(subtitle.entries, start=1):
        block = f"{index}\n{format_time_srt(entry.start_time)} --> {format_time_srt(entry.end_time)}\n{entry.text}\n"
        if entry.translation:
            block += f"{entry.translation}\n"
        blocks.append(block)
    return "\n".join(blocks)


def to_vtt(subtitle: Subtitle) -> str:
    parts = ["WEBVTT\n\n"]
    for index, entry in enumerate(subtitle.entries, start=1):
        parts.append(
            f"{index}\n{format_time_vtt(entry.start_time)} --> {format_time_vtt(entry.end_time)}\n{entry.text}\n\n"
        )
    return "".join(parts)


_RENDERERS: dict[str, Callable[[Subtitle], str]] = {
    SubtitleFormat.TXT.value: to_plain_text,
    SubtitleFormat.TXT_TIMESTAMP.value: to_timestamped_text,
    SubtitleFormat.SRT.value: to_srt,
    SubtitleFormat.SRT_BILINGUAL.value: to_srt_bilingual,
    SubtitleFormat.VTT.value: to_vtt,
}


_SUFFIXES: dict[str, str] = {
    SubtitleFormat.TXT.value: ".txt",
    SubtitleFormat.TXT_TIMESTAMP.value: ".txt",
    SubtitleFormat.SRT.value: ".srt",
    SubtitleFormat.SRT_BILINGUAL.value: ".srt",
    SubtitleFormat.VTT.value: ".vtt",
}


def render_subtitle(subtitle: Subtitle, format_choice: str) -> str:
    return _RENDERERS[normalize_subtitle_format(format_choice)](subtitle)


def subtitle_file_suffix(format_choice: str) -> str:
    return _SUFFIXES[normalize_subtitle_format(format_choice)]
