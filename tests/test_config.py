from __future__ import annotations

import json

import pytest

from lecturecrate.core import config


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "app" / config.CONFIG_FILENAME
    monkeypatch.setattr(config, "config_path", lambda: path)
    return path


def test_missing_file_gives_defaults(config_file):
    loaded = config.load_config()
    assert loaded == config.default_config()
    assert loaded.to_pdf is True
    assert loaded.max_concurrent_tasks == 3


def test_save_then_load(config_file):
    settings = config.default_config()
    settings.save_path = "/data/lectures"
    settings.enable_image_dedup = True
    settings.subtitle_format = "vtt"
    assert config.save_config(settings) == str(config_file)
    assert not config_file.with_suffix(".json.tmp").exists()
    loaded = config.load_config()
    assert loaded.save_path == "/data/lectures"
    assert loaded.enable_image_dedup is True
    assert loaded.subtitle_format == "vtt"


def test_values_are_sanitized(config_file):
    config_file.parent.mkdir(parents=True)
    config_file.write_text(
        json.dumps(
            {
                "save_path": "   ",
                "to_pdf": "off",
                "max_concurrent_tasks": 99,
                "dedup_threshold": -4,
                "api_base_url": "ftp://nope",
                "request_timeout_seconds": "abc",
                "default_granularity": "Month",
                "subtitle_format": "docx",
            }
        ),
        encoding="utf-8",
    )
    loaded = config.load_config()
    defaults = config.default_config()
    assert loaded.save_path == defaults.save_path
    assert loaded.to_pdf is False
    assert loaded.max_concurrent_tasks == config.MAX_CONCURRENT_TASKS_MAX
    assert loaded.dedup_threshold == config.DEDUP_THRESHOLD_MIN
    assert loaded.api_base_url == config.DEFAULT_API_BASE_URL
    assert loaded.request_timeout_seconds == defaults.request_timeout_seconds
    assert loaded.default_granularity == "month"
    assert loaded.subtitle_format == "srt"


def test_corrupt_file_falls_back_to_defaults(config_file):
    config_file.parent.mkdir(parents=True)
    config_file.write_text("{not json", encoding="utf-8")
    assert config.load_config() == config.default_config()


def test_base_url_trailing_slash_is_trimmed(config_file):
    config_file.parent.mkdir(parents=True)
    config_file.write_text(json.dumps({"api_base_url": "https://lectures.example.test/"}), encoding="utf-8")
    assert config.load_config().api_base_url == "https://lectures.example.test"
