from __future__ import annotations

import threading
import time

import pymupdf as fitz
import pytest

from conftest import make_session
from lecturecrate.core import slide_service
from lecturecrate.core.models import Session, SlideJob
from lecturecrate.core.slide_service import (
    PdfRenderer,
    SlideService,
    drop_consecutive_duplicates,
    gradient_hash,
    hamming_distance,
    image_suffix_for_url,
)


def _split_image(*, dark_left: bool) -> bytes:
    pixmap = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, 64, 48), False)
    left, right = ((0, 0, 0), (255, 255, 255)) if dark_left else ((255, 255, 255), (0, 0, 0))
    pixmap.set_rect(fitz.IRect(0, 0, 32, 48), left)
    pixmap.set_rect(fitz.IRect(32, 0, 64, 48), right)
    return pixmap.tobytes("png")


class _ImageSource:
    def __init__(self, images):
        self.images = images
        self.fetched = []

    def download_bytes(self, url, *, max_bytes):
        self.fetched.append(url)
        image = self.images[url]
        if isinstance(image, Exception):
            raise image
        return image


def _session(urls, sub_id=1):
    return Session(sub_id=sub_id, course_name="Signals", sub_name=f"Lecture {sub_id}", ppt_image_urls=tuple(urls), path="Signals")


def test_hamming_distance():
    assert hamming_distance(0b1011, 0b1011) == 0
    assert hamming_distance(0b1111, 0b0000) == 4


def test_drop_consecutive_duplicates_keeps_later_page():
    kept, skipped = drop_consecutive_duplicates(["p1", "p2", "p3", "p4"], [0b0, 0b1, 0xFF00, None], 1)
    assert kept == ["p2", "p3", "p4"]
    assert skipped == ["p1"]


def test_drop_consecutive_duplicates_only_compares_neighbours():
    kept, _skipped = drop_consecutive_duplicates(["a", "b", "c"], [0, 0xFFFF, 0], 2)
    assert kept == ["a", "b", "c"]


def test_gradient_hash_separates_different_slides():
    first = gradient_hash(_split_image(dark_left=True))
    assert gradient_hash(_split_image(dark_left=True)) == first
    assert hamming_distance(first, gradient_hash(_split_image(dark_left=False))) > 5


def test_image_suffix_for_url():
    assert image_suffix_for_url("https://cdn.example.test/a/1.PNG?x=1") == ".png"
    assert image_suffix_for_url("https://cdn.example.test/a/1") == ".jpg"


def test_run_job_dedups_and_renders_pdf(tmp_path):
    dark, light = _split_image(dark_left=True), _split_image(dark_left=False)
    urls = ["https://cdn.example.test/1.png", "https://cdn.example.test/2.png", "https://cdn.example.test/3.png"]
    source = _ImageSource(dict(zip(urls, [dark, dark, light])))
    service = SlideService(source, str(tmp_path), enable_image_dedup=True, dedup_threshold=5)
    progress = []
    result = service.run_job(
        SlideJob(job_id="slides-1", session=_session(urls), renderer=PdfRenderer()),
        threading.Event(),
        progress_cb=lambda job_id, percent, message: progress.append(percent),
    )
    assert result.state == "done"
    assert (result.pages_saved, result.pages_skipped) == (2, 1)
    folder = tmp_path / "Signals" / "Lecture 1"
    assert sorted(path.name for path in folder.iterdir()) == ["002.png", "003.png"]
    assert result.output_path == str(tmp_path / "Signals" / "Lecture 1.pdf")
    with fitz.open(result.output_path) as document:
        assert document.page_count == 2
    assert progress[-1] == pytest.approx(100.0)


def test_run_job_without_renderer_keeps_images(tmp_path):
    url = "https://cdn.example.test/only.jpg"
    service = SlideService(_ImageSource({url: _split_image(dark_left=True)}), str(tmp_path))
    result = service.run_job(SlideJob(job_id="j", session=_session([url])), threading.Event())
    assert result.state == "done"
    assert result.output_path == str(tmp_path / "Signals" / "Lecture 1")
    assert (tmp_path / "Signals" / "Lecture 1" / "001.jpg").exists()


def test_run_batch_counts_failures_and_cancellations(tmp_path):
    good = _session(["https://cdn.example.test/ok.png"], sub_id=1)
    bad = _session(["https://cdn.example.test/bad.png"], sub_id=2)
    source = _ImageSource(
        {
            "https://cdn.example.test/ok.png": _split_image(dark_left=True),
            "https://cdn.example.test/bad.png": RuntimeError("404 Not Found"),
        }
    )
    service = SlideService(source, str(tmp_path))
    logs = []
    summary = service.run_batch(
        [SlideJob(job_id="a", session=good), SlideJob(job_id="b", session=bad)],
        2,
        threading.Event(),
        log_cb=logs.append,
    )
    assert (summary.total, summary.completed, summary.failed, summary.cancelled) == (2, 1, 1, 0)
    assert any("404 Not Found" in line for line in logs)

    cancel = threading.Event()
    cancel.set()
    summary = service.run_batch([SlideJob(job_id="c", session=make_session(3))], 1, cancel)
    assert summary.cancelled == 1


def _deck_jobs(count):
    dark, light = _split_image(dark_left=True), _split_image(dark_left=False)
    images = {}
    jobs = []
    for sub_id in range(1, count + 1):
        urls = [f"https://cdn.example.test/{sub_id}/{page}.png" for page in range(1, 5)]
        images.update(zip(urls, [dark, dark, light, light]))
        jobs.append(SlideJob(job_id=f"slides-{sub_id}", session=_session(urls, sub_id=sub_id), renderer=PdfRenderer()))
    return images, jobs


def test_run_batch_parallel_with_dedup_and_pdf(tmp_path):
    images, jobs = _deck_jobs(12)
    service = SlideService(_ImageSource(images), str(tmp_path), enable_image_dedup=True, dedup_threshold=5)
    summary = service.run_batch(jobs, 6, threading.Event())
    assert (summary.total, summary.completed, summary.failed) == (12, 12, 0)
    for result in summary.results:
        assert (result.pages_saved, result.pages_skipped) == (2, 2)
        with fitz.open(result.output_path) as document:
            assert document.page_count == 2


def test_run_batch_downloads_while_pdf_work_waits_for_lock(tmp_path):
    images, jobs = _deck_jobs(4)
    source = _ImageSource(images)
    service = SlideService(source, str(tmp_path), enable_image_dedup=True, dedup_threshold=5)
    outcome = {}
    with slide_service.FITZ_LOCK:
        worker = threading.Thread(target=lambda: outcome.update(summary=service.run_batch(jobs, 4, threading.Event())))
        worker.start()
        deadline = time.monotonic() + 10
        while len(source.fetched) < len(images) and time.monotonic() < deadline:
            time.sleep(0.01)
        assert len(source.fetched) == len(images)
        assert worker.is_alive()
    worker.join(timeout=30)
    assert not worker.is_alive()
    assert outcome["summary"].completed == 4
