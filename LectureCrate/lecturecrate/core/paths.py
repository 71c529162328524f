from __future__ import annotations

import os
import re
from functools import lru_cache
from pathlib import Path

from .config import APP_NAME

_INVALID_PATH_CHARS_RE = re.compile(r'[<>:"/\\|?*\x00-\x1F]')


@lru_cache(maxsize=1)
def appdata_dir() -> Path:
    base = os.environ.get("LOCALAPPDATA") or os.environ.get("XDG_CONFIG_HOME")
    if base:
        return Path(base).resolve() / APP_NAME
    return Path.home() / f".{APP_NAME.lower()}"


def default_download_dir() -> Path:
    return Path.home() / "Downloads" / APP_NAME


@lru_cache(maxsize=1)
def runtime_storage_dir() -> Path:
    target = appdata_dir()
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RuntimeError(
            f"Unable to create storage directory: {target}. "
            "Check folder permissions and available disk space."
        ) from exc
    return target


def sanitize_path_component(value: str, *, fallback: str = "untitled") -> str:
    cleaned = _INVALID_PATH_CHARS_RE.sub("_", str(value or "")).strip().strip(".")
    return cleaned or fallback


def session_output_dir(save_path: str, relative_path: str, sub_name: str) -> Path:
    base = Path(str(save_path or "")).expanduser()
    for part in Path(str(relative_path or "")).parts:
        if part in {"", ".", "..", "/", "\\"} or part.endswith(":\\"):
            continue
        base = base / sanitize_path_component(part)
    return base / sanitize_path_component(sub_name)


def session_output_file(save_path: str, relative_path: str, sub_name: str, suffix: str) -> Path:
    folder = session_output_dir(save_path, relative_path, sub_name)
    return folder.with_name(f"{folder.name}{suffix}")
