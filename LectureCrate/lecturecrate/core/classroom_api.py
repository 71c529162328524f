from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

import requests

from .config import APP_NAME, APP_VERSION, DEFAULT_API_BASE_URL
from .models import Course, Session

RANGE_SUBS_PATH = "/api/subs/range"
COURSE_SUBS_PATH = "/api/courses/subs"
SEARCH_COURSES_PATH = "/api/courses/search"
TRANSCRIPT_PATH = "/api/subs/transcript"


class ClassroomApiError(RuntimeError):
    pass


class ClassroomSource(Protocol):
    def get_range_subs(self, start_at: str, end_at: str) -> list[Session]: ...

    def get_course_all_sub_ppts(self, course_ids: Sequence[int]) -> list[Session]: ...

    def search_courses(self, course_name: str, teacher_name: str) -> list[Course]: ...


class TranscriptSource(Protocol):
    def fetch_transcript(self, sub_id: int) -> object: ...


def _as_int(value: object, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_text(value: object) -> str:
    return str(value or "").strip()


def session_from_payload(payload: object) -> Session | None:
    if not isinstance(payload, dict):
        return None
    sub_id = _as_int(payload.get("sub_id"), default=-1)
    if sub_id < 0:
        return None
    urls = payload.get("ppt_image_urls")
    if not isinstance(urls, list):
        urls = []
    return Session(
        sub_id=sub_id,
        course_id=_as_int(payload.get("course_id")),
        course_name=_as_text(payload.get("course_name")),
        sub_name=_as_text(payload.get("sub_name")),
        lecturer_name=_as_text(payload.get("lecturer_name")),
        ppt_image_urls=tuple(_as_text(url) for url in urls if _as_text(url)),
        path=_as_text(payload.get("path")),
    )


def course_from_payload(payload: object) -> Course | None:
    if not isinstance(payload, dict):
        return None
    course_id = _as_int(payload.get("course_id"), default=-1)
    if course_id < 0:
        return None
    return Course(
        course_id=course_id,
        course_name=_as_text(payload.get("course_name")),
        lecturer_name=_as_text(payload.get("lecturer_name")),
    )


def parse_sessions(items: Iterable[object]) -> list[Session]:
    sessions: list[Session] = []
    seen: set[int] = set()
    for item in items:
        session = session_from_payload(item)
        if session is None or session.sub_id in seen:
            continue
        seen.add(session.sub_id)
        sessions.append(session)
    return sessions


def parse_courses(items: Iterable[object]) -> list[Course]:
    courses: list[Course] = []
    seen: set[int] = set()
    for item in items:
        course = course_from_payload(item)
        if course is None or course.course_id in seen:
            continue
        seen.add(course.course_id)
        courses.append(course)
    return courses


def _unwrap_list(payload: object, *, endpoint: str) -> list[object]:
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        raise ClassroomApiError(f"{endpoint}: unexpected response shape.")
    code = payload.get("code", 0)
    if _as_int(code, default=-1) != 0:
        message = _as_text(payload.get("msg")) or f"code {code}"
        raise ClassroomApiError(f"{endpoint}: {message}")
    data = payload.get("data", payload.get("list", []))
    if isinstance(data, dict):
        data = data.get("list", [])
    if not isinstance(data, list):
        raise ClassroomApiError(f"{endpoint}: response did not contain a list.")
    return data


class ClassroomApiClient:
    def __init__(
        self,
        *,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout_seconds: float = 15.0,
        http: requests.Session | None = None,
    ) -> None:
        self._base_url = str(base_url or DEFAULT_API_BASE_URL).strip().rstrip("/")
        self._timeout_seconds = max(1.0, float(timeout_seconds))
        self._http = http or requests.Session()
        self._http.headers.setdefault("User-Agent", f"{APP_NAME}/{APP_VERSION}")

    def _request_json(self, method: str, path: str, **kwargs: object) -> object:
        url = f"{self._base_url}{path}"
        try:
            response = self._http.request(method, url, timeout=self._timeout_seconds, **kwargs)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise ClassroomApiError(str(exc)) from exc
        except ValueError as exc:
            raise ClassroomApiError(f"{path}: response was not valid JSON.") from exc
        return payload

    def get_range_subs(self, start_at: str, end_at: str) -> list[Session]:
        payload = self._request_json("GET", RANGE_SUBS_PATH, params={"start_at": start_at, "end_at": end_at})
        return parse_sessions(_unwrap_list(payload, endpoint="get_range_subs"))

    def get_course_all_sub_ppts(self, course_ids: Sequence[int]) -> list[Session]:
        ids = [int(course_id) for course_id in course_ids]
        payload = self._request_json("POST", COURSE_SUBS_PATH, json={"course_ids": ids})
        return parse_sessions(_unwrap_list(payload, endpoint="get_course_all_sub_ppts"))

    def search_courses(self, course_name: str, teacher_name: str) -> list[Course]:
        params = {"course_name": str(course_name or "").strip(), "teacher_name": str(teacher_name or "").strip()}
        payload = self._request_json("GET", SEARCH_COURSES_PATH, params=params)
        return parse_courses(_unwrap_list(payload, endpoint="search_courses"))

    def fetch_transcript(self, sub_id: int) -> object:
        return self._request_json("GET", TRANSCRIPT_PATH, params={"sub_id": int(sub_id), "format": "json"})

    def download_bytes(self, url: str, *, max_bytes: int) -> bytes:
        chunks: list[bytes] = []
        total = 0
        try:
            with self._http.get(url, stream=True, timeout=self._timeout_seconds) as response:
                response.raise_for_status()
                for chunk in response.iter_content(chunk_size=65536):
                    if not chunk:
                        continue
                    total += len(chunk)
                    if total > max_bytes:
                        raise ClassroomApiError(f"{url}: file exceeds {max_bytes} bytes.")
                    chunks.append(chunk)
        except requests.RequestException as exc:
            raise ClassroomApiError(str(exc)) from exc
        return b"".join(chunks)

    def close(self) -> None:
        self._http.close()
