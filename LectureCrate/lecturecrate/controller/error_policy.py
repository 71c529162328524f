from __future__ import annotations

from ..core.models import Notice, NoticeCategory, NoticeLevel

_ERROR_PATTERNS: tuple[tuple[str, bool, tuple[str, ...]], ...] = (
    (
        "rate_limit",
        True,
        ("429", "too many requests", "rate limit", "try again later"),
    ),
    (
        "network",
        True,
        (
            "timeout",
            "timed out",
            "connection reset",
            "connection aborted",
            "connection refused",
            "max retries exceeded",
            "network is unreachable",
            "name resolution",
            "temporarily unavailable",
            "service unavailable",
            "502",
            "503",
            "504",
        ),
    ),
    (
        "authentication",
        False,
        ("401", "403", "unauthorized", "forbidden", "sign in", "login", "token"),
    ),
    (
        "not_found",
        False,
        ("404", "not found", "no transcript"),
    ),
    (
        "response",
        False,
        ("not valid json", "unexpected response", "did not contain a list", "api error"),
    ),
    (
        "filesystem",
        False,
        ("permission denied", "access is denied", "no space left", "disk full", "read-only file system"),
    ),
)

_FAILURE_HINTS: dict[str, str] = {
    "rate_limit": "The platform is rate-limiting requests. Wait a bit and retry.",
    "network": "Network issue detected. Check the connection and retry.",
    "authentication": "The platform rejected the request. Sign in again and retry.",
    "not_found": "The requested lecture data is not available.",
    "response": "The platform returned data in an unexpected shape.",
    "filesystem": "Download folder issue. Check write permissions and free space.",
}


def classify_remote_error(message: str) -> tuple[str, bool]:
    text = str(message or "").strip().lower()
    if not text:
        return "unknown", False
    for category, retryable, tokens in _ERROR_PATTERNS:
        if any(token in text for token in tokens):
            return category, retryable
    return "unknown", False


def format_classified_error(message: str) -> str:
    raw = str(message or "").strip()
    category, _retryable = classify_remote_error(raw)
    short = raw.replace("\r", " ").replace("\n", " ")
    if len(short) > 280:
        short = f"{short[:279]}..."
    return f"{category.upper()}: {short}" if short else category.upper()


def failure_hint(category: str) -> str:
    normalized = str(category or "").strip().lower()
    return _FAILURE_HINTS.get(normalized, "Unknown failure. Retry later.")


def validation_notice(title: str, description: str = "") -> Notice:
    return Notice(
        level=NoticeLevel.ERROR.value,
        category=NoticeCategory.VALIDATION.value,
        title=title,
        description=description,
    )


def remote_failure_notice(title: str, message: str) -> Notice:
    return Notice(
        level=NoticeLevel.ERROR.value,
        category=NoticeCategory.REMOTE.value,
        title=title,
        description=str(message or "").strip(),
    )


def empty_result_notice(title: str, description: str = "") -> Notice:
    return Notice(
        level=NoticeLevel.INFO.value,
        category=NoticeCategory.EMPTY_RESULT.value,
        title=title,
        description=description,
    )
