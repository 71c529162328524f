from __future__ import annotations

import json
import os
from pathlib import Path

from .models import AppConfig, DateGranularity, SubtitleFormat, normalize_granularity, normalize_subtitle_format

APP_NAME = "LectureCrate"
APP_VERSION = "1.0.0"

CONFIG_FILENAME = "LectureCrate_config.json"
CONFIG_SCHEMA_VERSION = 2

DEFAULT_API_BASE_URL = "http://127.0.0.1:8765"
MAX_CONCURRENT_TASKS_MIN = 1
MAX_CONCURRENT_TASKS_MAX = 8
DEDUP_THRESHOLD_MIN = 0
DEDUP_THRESHOLD_MAX = 64
REQUEST_TIMEOUT_SECONDS_MIN = 1
REQUEST_TIMEOUT_SECONDS_MAX = 120


def _paths():
    from . import paths as paths_module

    return paths_module


def _coerce_int(value: object, default: int, minimum: int, maximum: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        parsed = default
    return max(minimum, min(maximum, parsed))


def _coerce_bool(value: object, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "on"}:
            return True
        if lowered in {"false", "0", "no", "off"}:
            return False
    return default


def _coerce_non_empty_text(value: object, *, default: str) -> str:
    text = str(value or "").strip()
    return text if text else str(default)


def _coerce_base_url(value: object, *, default: str) -> str:
    text = str(value or "").strip().rstrip("/")
    if not text.lower().startswith(("http://", "https://")):
        return default
    return text


def default_config() -> AppConfig:
    return AppConfig(
        schema_version=CONFIG_SCHEMA_VERSION,
        save_path=str(_paths().default_download_dir()),
        to_pdf=True,
        max_concurrent_tasks=3,
        enable_image_dedup=False,
        dedup_threshold=5,
        api_base_url=DEFAULT_API_BASE_URL,
        request_timeout_seconds=15,
        default_granularity=DateGranularity.WEEK.value,
        subtitle_format=SubtitleFormat.SRT.value,
        window_geometry="",
    )


def _sanitize_payload(payload: dict[str, object]) -> AppConfig:
    defaults = default_config()
    return AppConfig(
        schema_version=CONFIG_SCHEMA_VERSION,
        save_path=_coerce_non_empty_text(payload.get("save_path", defaults.save_path), default=defaults.save_path),
        to_pdf=_coerce_bool(payload.get("to_pdf"), default=defaults.to_pdf),
        max_concurrent_tasks=_coerce_int(
            payload.get("max_concurrent_tasks", defaults.max_concurrent_tasks),
            defaults.max_concurrent_tasks,
            MAX_CONCURRENT_TASKS_MIN,
            MAX_CONCURRENT_TASKS_MAX,
        ),
        enable_image_dedup=_coerce_bool(payload.get("enable_image_dedup"), default=defaults.enable_image_dedup),
        dedup_threshold=_coerce_int(
            payload.get("dedup_threshold", defaults.dedup_threshold),
            defaults.dedup_threshold,
            DEDUP_THRESHOLD_MIN,
            DEDUP_THRESHOLD_MAX,
        ),
        api_base_url=_coerce_base_url(payload.get("api_base_url"), default=defaults.api_base_url),
        request_timeout_seconds=_coerce_int(
            payload.get("request_timeout_seconds", defaults.request_timeout_seconds),
            defaults.request_timeout_seconds,
            REQUEST_TIMEOUT_SECONDS_MIN,
            REQUEST_TIMEOUT_SECONDS_MAX,
        ),
        default_granularity=normalize_granularity(
            payload.get("default_granularity"),
            default=defaults.default_granularity,
        ),
        subtitle_format=normalize_subtitle_format(
            payload.get("subtitle_format"),
            default=defaults.subtitle_format,
        ),
        window_geometry=str(payload.get("window_geometry", defaults.window_geometry) or ""),
    )


def config_path() -> Path:
    return _paths().runtime_storage_dir() / CONFIG_FILENAME


def _load_config_from_path(path: Path) -> AppConfig | None:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(raw, dict):
            return _sanitize_payload(raw)
    except (OSError, UnicodeError, json.JSONDecodeError, TypeError, ValueError):
        return None
    return None


def load_config() -> AppConfig:
    primary = config_path()
    if primary.exists():
        loaded = _load_config_from_path(primary)
        if loaded is not None:
            return loaded
    return default_config()


def config_to_dict(config: AppConfig) -> dict[str, object]:
    return {
        "schema_version": CONFIG_SCHEMA_VERSION,
        "save_path": str(config.save_path),
        "to_pdf": bool(config.to_pdf),
        "max_concurrent_tasks": int(config.max_concurrent_tasks),
        "enable_image_dedup": bool(config.enable_image_dedup),
        "dedup_threshold": int(config.dedup_threshold),
        "api_base_url": str(config.api_base_url or DEFAULT_API_BASE_URL),
        "request_timeout_seconds": int(config.request_timeout_seconds),
        "default_granularity": str(config.default_granularity or DateGranularity.WEEK.value),
        "subtitle_format": str(config.subtitle_format or SubtitleFormat.SRT.value),
        "window_geometry": str(config.window_geometry or ""),
    }


def save_config(config: AppConfig) -> str | None:
    payload = config_to_dict(config)
    path = config_path()
    tmp_path = path.with_suffix(f"{path.suffix}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(str(tmp_path), str(path))
        return str(path)
    except (OSError, TypeError, ValueError):
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError:
            pass
        return None
