from __future__ import annotations

import concurrent.futures
import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol, TypeVar
from urllib.parse import urlparse

import pymupdf as fitz

from .models import SlideDownloadResult, SlideDownloadSummary, SlideJob, SlideJobState
from .paths import session_output_dir, session_output_file

ProgressCallback = Callable[[str, float, str], None]
StatusCallback = Callable[[str, str], None]
LogCallback = Callable[[str], None]

SLIDE_IMAGE_MAX_BYTES = 25 * 1024 * 1024
HASH_SIZE = 8
_IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp", ".bmp", ".gif"}

T = TypeVar("T")

# PyMuPDF is not thread-safe, even across separate documents.
# Every fitz call in this module runs under this lock; downloads stay parallel.
FITZ_LOCK = threading.Lock()


class ImageSource(Protocol):
    def download_bytes(self, url: str, *, max_bytes: int) -> bytes: ...


class PdfRenderer:
    def render(self, image_paths: list[str], output_path: str) -> str:
        if not image_paths:
            raise RuntimeError("No slide images to render.")
        with FITZ_LOCK:
            return self._render_locked(image_paths, output_path)

    def _render_locked(self, image_paths: list[str], output_path: str) -> str:
        document = fitz.open()
        try:
            for image_path in image_paths:
                with fitz.open(image_path) as image_document:
                    pdf_bytes = image_document.convert_to_pdf()
                with fitz.open("pdf", pdf_bytes) as page_document:
                    document.insert_pdf(page_document)
            Path(output_path).parent.mkdir(parents=True, exist_ok=True)
            document.save(output_path)
        finally:
            document.close()
        return output_path


def _gray_samples(image_bytes: bytes, columns: int, rows: int) -> tuple[bytes, int, int, int]:
    with FITZ_LOCK:
        pixmap = fitz.Pixmap(image_bytes)
        if pixmap.alpha:
            pixmap = fitz.Pixmap(pixmap, 0)
        if pixmap.n != 1:
            pixmap = fitz.Pixmap(fitz.csGRAY, pixmap)
        while pixmap.width >= columns * 8 and pixmap.height >= rows * 8:
            pixmap.shrink(1)
        sampled = (pixmap.samples, pixmap.width, pixmap.height, pixmap.stride)
        del pixmap
    return sampled


def gradient_hash(image_bytes: bytes, *, hash_size: int = HASH_SIZE) -> int:
    columns = hash_size + 1
    rows = hash_size
    samples, width, height, stride = _gray_samples(image_bytes, columns, rows)
    if width < columns or height < rows:
        raise ValueError("Image is too small to hash.")
    grid: list[list[float]] = []
    for row in range(rows):
        y0, y1 = row * height // rows, (row + 1) * height // rows
        cells: list[float] = []
        for column in range(columns):
            x0, x1 = column * width // columns, (column + 1) * width // columns
            total = 0
            for y in range(y0, y1):
                offset = y * stride
                total += sum(samples[offset + x0 : offset + x1])
            cells.append(total / max(1, (y1 - y0) * (x1 - x0)))
        grid.append(cells)
    value = 0
    for cells in grid:
        for left, right in zip(cells, cells[1:]):
            value = (value << 1) | (1 if left < right else 0)
    return value


def hamming_distance(first: int, second: int) -> int:
    return bin(first ^ second).count("1")


def drop_consecutive_duplicates(
    items: Sequence[T],
    hashes: Sequence[int | None],
    threshold: int,
) -> tuple[list[T], list[T]]:
    # Only neighbours are compared; for a similar pair the later page is kept.
    keep = [True] * len(items)
    for index in range(1, len(items)):
        current, previous = hashes[index], hashes[index - 1]
        if current is None or previous is None:
            continue
        if hamming_distance(current, previous) <= threshold:
            keep[index - 1] = False
    kept = [item for item, flag in zip(items, keep) if flag]
    skipped = [item for item, flag in zip(items, keep) if not flag]
    return kept, skipped


def image_suffix_for_url(url: str) -> str:
    suffix = Path(urlparse(str(url or "")).path).suffix.lower()
    return suffix if suffix in _IMAGE_SUFFIXES else ".jpg"


class SlideService:
    def __init__(
        self,
        source: ImageSource,
        save_path: str,
        *,
        enable_image_dedup: bool = False,
        dedup_threshold: int = 5,
    ) -> None:
        self._source = source
        self._save_path = str(save_path or "").strip()
        self._enable_image_dedup = bool(enable_image_dedup)
        self._dedup_threshold = max(0, int(dedup_threshold))

    def configure(self, *, save_path: str, enable_image_dedup: bool, dedup_threshold: int) -> None:
        self._save_path = str(save_path or "").strip()
        self._enable_image_dedup = bool(enable_image_dedup)
        self._dedup_threshold = max(0, int(dedup_threshold))

    def _hash_pages(self, page_paths: list[Path], log_cb: LogCallback | None) -> list[int | None]:
        hashes: list[int | None] = []
        for page_path in page_paths:
            try:
                hashes.append(gradient_hash(page_path.read_bytes()))
            except (OSError, ValueError, RuntimeError) as exc:
                if log_cb:
                    log_cb(f"Hashing {page_path.name} failed: {exc}")
                hashes.append(None)
        return hashes

    def run_job(
        self,
        job: SlideJob,
        cancel_token: threading.Event,
        *,
        progress_cb: ProgressCallback | None = None,
        status_cb: StatusCallback | None = None,
        log_cb: LogCallback | None = None,
    ) -> SlideDownloadResult:
        session = job.session
        result = SlideDownloadResult(job_id=job.job_id, sub_id=session.sub_id, state=SlideJobState.ERROR.value)
        if not session.ppt_image_urls:
            result.error = "Session has no slide images."
            return result
        relative = session.path or session.course_name
        folder = session_output_dir(self._save_path, relative, session.sub_name or str(session.sub_id))
        folder.mkdir(parents=True, exist_ok=True)
        if status_cb:
            status_cb(job.job_id, SlideJobState.DOWNLOADING.value)
        total = len(session.ppt_image_urls)
        page_paths: list[Path] = []
        for index, url in enumerate(session.ppt_image_urls, start=1):
            if cancel_token.is_set():
                result.state = SlideJobState.CANCELLED.value
                return result
            data = self._source.download_bytes(url, max_bytes=SLIDE_IMAGE_MAX_BYTES)
            page_path = folder / f"{index:03d}{image_suffix_for_url(url)}"
            page_path.write_bytes(data)
            page_paths.append(page_path)
            if progress_cb:
                progress_cb(job.job_id, index * 100.0 / total, f"{index}/{total} pages")
        if self._enable_image_dedup and len(page_paths) > 1:
            kept, skipped = drop_consecutive_duplicates(
                page_paths,
                self._hash_pages(page_paths, log_cb),
                self._dedup_threshold,
            )
            for skipped_path in skipped:
                skipped_path.unlink(missing_ok=True)
            page_paths = kept
            result.pages_skipped = len(skipped)
        result.pages_saved = len(page_paths)
        result.output_path = str(folder)
        if job.renderer is not None:
            if status_cb:
                status_cb(job.job_id, SlideJobState.RENDERING.value)
            pdf_path = session_output_file(self._save_path, relative, session.sub_name or str(session.sub_id), ".pdf")
            result.output_path = job.renderer.render([str(path) for path in page_paths], str(pdf_path))
        result.state = SlideJobState.DONE.value
        return result

    def run_batch(
        self,
        jobs: Sequence[SlideJob],
        concurrency: int,
        cancel_token: threading.Event,
        *,
        progress_cb: ProgressCallback | None = None,
        status_cb: StatusCallback | None = None,
        log_cb: LogCallback | None = None,
    ) -> SlideDownloadSummary:
        results_by_job: dict[str, SlideDownloadResult] = {}
        results_lock = threading.Lock()

        def run_one(job: SlideJob) -> None:
            try:
                result = self.run_job(
                    job,
                    cancel_token,
                    progress_cb=progress_cb,
                    status_cb=status_cb,
                    log_cb=log_cb,
                )
            except Exception as exc:
                result = SlideDownloadResult(
                    job_id=job.job_id,
                    sub_id=job.session.sub_id,
                    state=SlideJobState.ERROR.value,
                    error=str(exc),
                )
            if result.state == SlideJobState.ERROR.value and log_cb:
                log_cb(f"[{job.job_id}] ERROR: {result.error}")
            elif result.state == SlideJobState.DONE.value and log_cb:
                skipped = f", {result.pages_skipped} duplicate page(s) removed" if result.pages_skipped else ""
                log_cb(f"[{job.job_id}] Saved {result.pages_saved} page(s){skipped}: {result.output_path}")
            with results_lock:
                results_by_job[job.job_id] = result
            if status_cb:
                status_cb(job.job_id, result.state)

        max_workers = max(1, min(int(concurrency), len(jobs) or 1))
        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(run_one, job) for job in jobs]
            concurrent.futures.wait(futures)

        results = [results_by_job[job.job_id] for job in jobs if job.job_id in results_by_job]
        return SlideDownloadSummary(
            total=len(results),
            completed=sum(1 for item in results if item.state == SlideJobState.DONE.value),
            failed=sum(1 for item in results if item.state == SlideJobState.ERROR.value),
            cancelled=sum(1 for item in results if item.state == SlideJobState.CANCELLED.value),
            results=results,
        )
