from __future__ import annotations

import pytest

from lecturecrate.core.subtitle import (
    Subtitle,
    SubtitleEntry,
    TranscriptError,
    format_time_simple,
    format_time_srt,
    format_time_vtt,
    parse_transcript,
    render_subtitle,
    subtitle_file_suffix,
)

SUBTITLE = Subtitle(
    entries=(
        SubtitleEntry(start_time=1.5, end_time=4.25, text="Hello", translation="Bonjour"),
        SubtitleEntry(start_time=3661.0, end_time=3662.5, text="World"),
    )
)


def test_time_formats():
    assert format_time_simple(125.9) == "02:05"
    assert format_time_srt(3661.5) == "01:01:01,500"
    assert format_time_vtt(0.25) == "00:00:00.250"


def test_plain_text_concatenates_entries():
    assert render_subtitle(SUBTITLE, "txt") == "HelloWorld"


def test_timestamped_text():
    assert render_subtitle(SUBTITLE, "txt_timestamp") == "[00:01 - 00:04] Hello\n[61:01 - 61:02] World"


def test_srt():
    expected = "1\n00:00:01,500 --> 00:00:04,250\nHello\n\n2\n01:01:01,000 --> 01:01:02,500\nWorld\n"
    assert render_subtitle(SUBTITLE, "srt") == expected


def test_bilingual_srt_appends_translation():
    expected = "1\n00:00:01,500 --> 00:00:04,250\nHello\nBonjour\n\n2\n01:01:01,000 --> 01:01:02,500\nWorld\n"
    assert render_subtitle(SUBTITLE, "srt_bilingual") == expected


def test_vtt():
    expected = (
        "WEBVTT\n\n"
        "1\n00:00:01.500 --> 00:00:04.250\nHello\n\n"
        "2\n01:01:01.000 --> 01:01:02.500\nWorld\n\n"
    )
    assert render_subtitle(SUBTITLE, "vtt") == expected


@pytest.mark.parametrize(
    ("fmt", "suffix"),
    [("txt", ".txt"), ("txt_timestamp", ".txt"), ("srt", ".srt"), ("srt_bilingual", ".srt"), ("vtt", ".vtt")],
)
def test_suffixes(fmt, suffix):
    assert subtitle_file_suffix(fmt) == suffix


def test_parse_transcript_drops_empty_text():
    payload = {
        "code": 0,
        "list": [
            {
                "all_content": [
                    {"BeginSec": 0, "EndSec": 2, "Text": "Intro", "TransText": ""},
                    {"BeginSec": 2, "EndSec": 3, "Text": ""},
                    {"BeginSec": "4", "EndSec": "6", "Text": "Next", "TransText": "Suivant"},
                ]
            }
        ],
    }
    subtitle = parse_transcript(payload)
    assert len(subtitle) == 2
    assert subtitle.entries[0].translation is None
    assert subtitle.entries[1].start_time == 4.0
    assert subtitle.entries[1].translation == "Suivant"


def test_parse_transcript_without_content_is_empty():
    assert len(parse_transcript({"code": 0, "list": []})) == 0


def test_parse_transcript_api_error():
    with pytest.raises(TranscriptError, match="API error: expired"):
        parse_transcript({"code": 401, "msg": "expired"})
