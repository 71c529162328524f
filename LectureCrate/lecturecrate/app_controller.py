from __future__ import annotations

from datetime import date

from PySide6.QtCore import QByteArray, QObject, QThread, QTimer, Qt

from .controller import catalog
from .controller.batch_jobs import build_slide_jobs, slide_summary_notice
from .controller.download_runtime import SlideRuntimeState
from .controller.error_policy import classify_remote_error, failure_hint, format_classified_error, validation_notice
from .controller.selection import selected_sessions
from .controller.subtitle_batch import (
    SubtitleBatchExecutor,
    SubtitleBatchOutcome,
    SubtitleDialogState,
    begin_download,
    choose_format,
    close_dialog,
    finish_download,
    open_dialog,
)
from .core.classroom_api import ClassroomApiClient
from .core.config import config_to_dict, load_config, save_config
from .core.models import AppConfig, Notice, SlideDownloadSummary, SlideJob, SourceRangeMode
from .core.slide_service import PdfRenderer, SlideService
from .core.subtitle_service import SubtitleService
from .ui.main_window import MainWindow
from .workers.catalog_worker import CatalogResponse, CatalogWorker
from .workers.download_worker import SlideDownloadWorker
from .workers.subtitle_worker import SubtitleWorker

CONFIG_SAVE_DEBOUNCE_MS = 500
SHUTDOWN_WAIT_MS = 3000


class AppController(QObject):
    def __init__(self, app) -> None:
        super().__init__()
        self.app = app
        self.config: AppConfig = load_config()

        self.window = MainWindow()
        self.window.set_close_handler(self._on_close_request)
        self.window.set_config(self.config)
        self._restore_geometry()

        self.api_client = ClassroomApiClient(
            base_url=self.config.api_base_url,
            timeout_seconds=float(self.config.request_timeout_seconds),
        )
        self.subtitle_service = SubtitleService(self.api_client, self.config.save_path)
        self.subtitle_executor = SubtitleBatchExecutor(self.subtitle_service)
        self.slide_service = SlideService(
            self.api_client,
            self.config.save_path,
            enable_image_dedup=self.config.enable_image_dedup,
            dedup_threshold=self.config.dedup_threshold,
        )
        self.pdf_renderer = PdfRenderer()

        self.catalog_state = catalog.initial_state(granularity=self.config.default_granularity)
        self.subtitle_dialog = SubtitleDialogState(format=self.config.subtitle_format)
        self._slide_runtime = SlideRuntimeState()

        self._catalog_threads: dict[int, QThread] = {}
        self._catalog_workers: dict[int, CatalogWorker] = {}
        self._subtitle_thread: QThread | None = None
        self._subtitle_worker: SubtitleWorker | None = None
        self._slide_thread: QThread | None = None
        self._slide_worker: SlideDownloadWorker | None = None

        self._config_save_timer = QTimer(self)
        self._config_save_timer.setSingleShot(True)
        self._config_save_timer.setInterval(CONFIG_SAVE_DEBOUNCE_MS)
        self._config_save_timer.timeout.connect(self._flush_config_save)
        self._config_dirty = False
        self._last_saved_config_payload: dict[str, object] | None = None

        self._connect_window_signals()
        self._render()

    def _connect_window_signals(self) -> None:
        w = self.window
        w.sourceModeChanged.connect(self._on_source_mode_changed)
        w.granularityChanged.connect(self._on_granularity_changed)
        w.anchorChanged.connect(self._on_anchor_changed)
        w.dayRangeChanged.connect(self._on_day_range_changed)
        w.searchRequested.connect(self._on_search_requested)
        w.deriveRequested.connect(self._on_derive_requested)
        w.refreshRequested.connect(self._on_refresh_requested)
        w.sourceCheckedChanged.connect(self._on_source_checked_changed)
        w.targetCheckedChanged.connect(self._on_target_checked_changed)
        w.downloadSlidesRequested.connect(self._on_download_slides_requested)
        w.cancelSlidesRequested.connect(self.stop_slide_download)
        w.subtitleDialogRequested.connect(self._on_subtitle_dialog_requested)
        w.subtitleFormatChanged.connect(self._on_subtitle_format_changed)
        w.subtitleConfirmRequested.connect(self._on_subtitle_confirm_requested)
        w.subtitleCancelRequested.connect(self._on_subtitle_cancel_requested)
        w.saveLocationChanged.connect(self._on_save_location_changed)
        w.toPdfChanged.connect(self._on_to_pdf_changed)
        w.dedupChanged.connect(self._on_dedup_changed)

    def run(self) -> None:
        self.window.show()
        self.window.append_log(f"Sessions are loaded from {self.config.api_base_url}")
        QTimer.singleShot(0, self._start_initial_fetch)

    def _start_initial_fetch(self) -> None:
        if self.catalog_state.source_mode == SourceRangeMode.MINE.value:
            self._apply(catalog.fetch_mine(self.catalog_state))

    def _restore_geometry(self) -> None:
        encoded = str(self.config.window_geometry or "").strip()
        if not encoded:
            return
        try:
            payload = QByteArray.fromBase64(encoded.encode("ascii"))
            if payload:
                self.window.restoreGeometry(payload)
        except (UnicodeEncodeError, ValueError):
            return

    def _flush_config_save(self) -> None:
        self.config.window_geometry = self.window.saveGeometry().toBase64().data().decode("ascii")
        payload = config_to_dict(self.config)
        if (not self._config_dirty) and self._last_saved_config_payload is not None:
            if payload == self._last_saved_config_payload:
                return
        saved_path = save_config(self.config)
        if saved_path:
            self._last_saved_config_payload = dict(payload)
            self._config_dirty = False
        else:
            self.window.append_log("[config] Could not save settings.")

    def _save_config(self, *, deferred: bool = False) -> None:
        self._config_dirty = True
        if deferred:
            self._config_save_timer.start()
            return
        self._config_save_timer.stop()
        self._flush_config_save()

    def _render(self) -> None:
        self.window.render_catalog(self.catalog_state)
        selected = selected_sessions(self.catalog_state.target_list, self.catalog_state.target_selection)
        self.window.render_subtitle_dialog(self.subtitle_dialog, selected_count=len(selected))

    def _show_notices(self, notices: tuple[Notice, ...]) -> None:
        for notice in notices:
            self.window.show_notice(notice)

    def _apply(self, transition: catalog.Transition) -> None:
        self.catalog_state = transition.state
        self._render()
        if transition.request is not None:
            self._start_catalog_worker(transition.request)
        self._show_notices(transition.notices)

    def _on_source_mode_changed(self, mode: str) -> None:
        self._apply(catalog.change_source_mode(self.catalog_state, mode))

    def _on_granularity_changed(self, granularity: str) -> None:
        self._apply(catalog.change_granularity(self.catalog_state, granularity))
        self.config.default_granularity = self.catalog_state.granularity
        self._save_config(deferred=True)

    def _on_anchor_changed(self, anchor: date) -> None:
        self._apply(catalog.change_anchor(self.catalog_state, anchor))

    def _on_day_range_changed(self, start: date, end: date) -> None:
        self._apply(catalog.change_day_range(self.catalog_state, start, end))

    def _on_search_requested(self, course_name: str, teacher_name: str) -> None:
        state = catalog.set_search_terms(self.catalog_state, course_name, teacher_name)
        self._apply(catalog.search_courses(state))

    def _on_derive_requested(self) -> None:
        self._apply(catalog.derive_from_courses(self.catalog_state))

    def _on_refresh_requested(self) -> None:
        self._apply(catalog.refresh_target(self.catalog_state))

    def _on_source_checked_changed(self, keys: list) -> None:
        self.catalog_state = catalog.set_source_checked(self.catalog_state, keys)
        self._render()

    def _on_target_checked_changed(self, keys: list) -> None:
        self.catalog_state = catalog.set_target_checked(self.catalog_state, keys)
        self._render()

    def _start_catalog_worker(self, request: catalog.CatalogRequest) -> None:
        thread = QThread(self)
        worker = CatalogWorker(self.api_client, request)
        worker.moveToThread(thread)
        thread.started.connect(worker.run)
        worker.logChanged.connect(self.window.append_log, Qt.ConnectionType.QueuedConnection)
        worker.finishedSummary.connect(self._on_catalog_response, Qt.ConnectionType.QueuedConnection)
        worker.finished.connect(thread.quit)
        worker.finished.connect(worker.deleteLater)
        thread.finished.connect(
            lambda request_id=request.request_id: self._on_catalog_thread_finished(request_id),
            Qt.ConnectionType.QueuedConnection,
        )
        thread.finished.connect(thread.deleteLater)
        self._catalog_threads[request.request_id] = thread
        self._catalog_workers[request.request_id] = worker
        thread.start()

    def _on_catalog_response(self, payload: object) -> None:
        if not isinstance(payload, CatalogResponse):
            return
        request = payload.request
        if not catalog.is_current(self.catalog_state, request):
            self.window.append_log(f"[catalog] Ignored outdated response #{request.request_id} ({request.kind}).")
            return
        if payload.ok:
            self.window.append_log(f"[catalog] {request.kind}: {len(payload.rows)} row(s).")
            self._apply(catalog.apply_result(self.catalog_state, request, payload.rows))
            return
        classified = format_classified_error(payload.error)
        self.window.append_log(f"[catalog] {request.kind} failed: {classified}")
        category, _retryable = classify_remote_error(payload.error)
        self.window.append_log(f"[catalog] {failure_hint(category)}")
        self._apply(catalog.apply_failure(self.catalog_state, request, payload.error))

    def _on_catalog_thread_finished(self, request_id: int) -> None:
        self._catalog_threads.pop(request_id, None)
        self._catalog_workers.pop(request_id, None)

    def _is_slide_download_running(self) -> bool:
        return bool(self._slide_thread and self._slide_thread.isRunning())

    def _on_download_slides_requested(self) -> None:
        if self._is_slide_download_running():
            self.window.show_notice(validation_notice("Slides are already downloading"))
            return
        renderer = self.pdf_renderer if self.config.to_pdf else None
        submission = build_slide_jobs(self.catalog_state, renderer)
        self.catalog_state = submission.state
        self._render()
        self._show_notices(submission.notices)
        if submission.jobs:
            self._start_slide_worker(list(submission.jobs))

    def _start_slide_worker(self, jobs: list[SlideJob]) -> None:
        self.slide_service.configure(
            save_path=self.config.save_path,
            enable_image_dedup=self.config.enable_image_dedup,
            dedup_threshold=self.config.dedup_threshold,
        )
        self._slide_runtime.initialize_jobs(
            [job.job_id for job in jobs],
            {job.job_id: job.session.sub_name for job in jobs},
        )
        self.window.set_slides_running(True)
        self.window.append_log(f"Downloading slides for {len(jobs)} session(s) to {self.config.save_path}")

        thread = QThread(self)
        worker = SlideDownloadWorker(self.slide_service, jobs, self.config.max_concurrent_tasks)
        worker.moveToThread(thread)
        thread.started.connect(worker.run)
        worker.progressChanged.connect(self._on_slide_progress, Qt.ConnectionType.QueuedConnection)
        worker.statusChanged.connect(self._on_slide_status, Qt.ConnectionType.QueuedConnection)
        worker.logChanged.connect(self.window.append_log, Qt.ConnectionType.QueuedConnection)
        worker.errorRaised.connect(self._on_worker_error, Qt.ConnectionType.QueuedConnection)
        worker.finishedSummary.connect(self._on_slide_summary, Qt.ConnectionType.QueuedConnection)
        worker.finished.connect(thread.quit)
        worker.finished.connect(worker.deleteLater)
        thread.finished.connect(self._on_slide_thread_finished, Qt.ConnectionType.QueuedConnection)
        thread.finished.connect(thread.deleteLater)
        self._slide_thread = thread
        self._slide_worker = worker
        thread.start()

    def stop_slide_download(self) -> None:
        if self._slide_worker is not None:
            self._slide_worker.stop()
            self.window.append_log("Stopping slide download...")

    def _on_slide_progress(self, job_id: str, percent: float, message: str) -> None:
        if self._slide_runtime.update_progress(job_id, percent):
            name = self._slide_runtime.name_by_job.get(job_id, "")
            self.window.set_slide_progress(self._slide_runtime.overall_percent(), f"{name} {message}".strip())

    def _on_slide_status(self, job_id: str, state: str) -> None:
        self._slide_runtime.update_state(job_id, state)
        done = self._slide_runtime.finished_jobs
        self.window.set_slide_progress(
            self._slide_runtime.overall_percent(),
            f"{done}/{self._slide_runtime.total_jobs} sessions",
        )

    def _on_slide_summary(self, payload: object) -> None:
        if not isinstance(payload, SlideDownloadSummary):
            return
        self.window.show_notice(slide_summary_notice(payload))

    def _on_slide_thread_finished(self) -> None:
        self._slide_thread = None
        self._slide_worker = None
        self._slide_runtime.reset()
        self.window.set_slides_running(False)

    def _on_worker_error(self, key: str, message: str) -> None:
        self.window.append_log(f"[{key}] {format_classified_error(message)}")

    def _on_subtitle_dialog_requested(self) -> None:
        self.subtitle_dialog, notices = open_dialog(self.subtitle_dialog, self.catalog_state)
        self._render()
        self._show_notices(notices)

    def _on_subtitle_format_changed(self, format_choice: str) -> None:
        self.subtitle_dialog = choose_format(self.subtitle_dialog, format_choice)
        self.config.subtitle_format = self.subtitle_dialog.format
        self._save_config(deferred=True)

    def _on_subtitle_cancel_requested(self) -> None:
        self.subtitle_dialog = close_dialog(self.subtitle_dialog)
        self._render()

    def _on_subtitle_confirm_requested(self) -> None:
        if self._subtitle_thread is not None:
            return
        launch = begin_download(self.subtitle_dialog, self.catalog_state)
        self.subtitle_dialog = launch.dialog
        self._render()
        self._show_notices(launch.notices)
        if not launch.jobs:
            return
        self.subtitle_service.set_save_path(self.config.save_path)
        self.window.append_log(f"Downloading {len(launch.jobs)} subtitle file(s) as {self.subtitle_dialog.format}")

        thread = QThread(self)
        worker = SubtitleWorker(self.subtitle_executor, list(launch.jobs))
        worker.moveToThread(thread)
        thread.started.connect(worker.run)
        worker.logChanged.connect(self.window.append_log, Qt.ConnectionType.QueuedConnection)
        worker.errorRaised.connect(self._on_worker_error, Qt.ConnectionType.QueuedConnection)
        worker.finishedSummary.connect(self._on_subtitle_outcome, Qt.ConnectionType.QueuedConnection)
        worker.finished.connect(thread.quit)
        worker.finished.connect(worker.deleteLater)
        thread.finished.connect(self._on_subtitle_thread_finished, Qt.ConnectionType.QueuedConnection)
        thread.finished.connect(thread.deleteLater)
        self._subtitle_thread = thread
        self._subtitle_worker = worker
        thread.start()

    def _on_subtitle_outcome(self, payload: object) -> None:
        if not isinstance(payload, SubtitleBatchOutcome):
            return
        self.subtitle_dialog = finish_download(self.subtitle_dialog)
        self._render()
        if payload.result is not None:
            for error in payload.result.errors:
                self.window.append_log(f"[subtitles] {error}")
        self.window.show_notice(payload.notice)

    def _on_subtitle_thread_finished(self) -> None:
        self._subtitle_thread = None
        self._subtitle_worker = None

    def _on_save_location_changed(self, path: str) -> None:
        self.config.save_path = str(path or "").strip()
        self.subtitle_service.set_save_path(self.config.save_path)
        self._save_config()

    def _on_to_pdf_changed(self, enabled: bool) -> None:
        self.config.to_pdf = bool(enabled)
        self._save_config(deferred=True)

    def _on_dedup_changed(self, enabled: bool) -> None:
        self.config.enable_image_dedup = bool(enabled)
        self._save_config(deferred=True)

    def _running_worker_threads(self) -> list[QThread]:
        candidates: list[QThread] = list(self._catalog_threads.values())
        if self._subtitle_thread is not None:
            candidates.append(self._subtitle_thread)
        if self._slide_thread is not None:
            candidates.append(self._slide_thread)
        running: list[QThread] = []
        for thread in candidates:
            try:
                if thread.isRunning():
                    running.append(thread)
            except RuntimeError:
                continue
        return running

    @staticmethod
    def _wait_for_thread_shutdown(thread: QThread, *, timeout_ms: int) -> bool:
        try:
            if not thread.isRunning():
                return True
            thread.quit()
            return bool(thread.wait(max(0, int(timeout_ms))))
        except RuntimeError:
            return True

    def _on_close_request(self) -> bool:
        if self.subtitle_dialog.busy:
            self.window.append_log("Subtitle download still running; waiting for it to finish.")
        for worker in (self._slide_worker, self._subtitle_worker, *self._catalog_workers.values()):
            if worker is not None:
                worker.stop()
        for thread in self._running_worker_threads():
            if not self._wait_for_thread_shutdown(thread, timeout_ms=SHUTDOWN_WAIT_MS):
                self.window.append_log("A background task did not stop in time.")
        self._config_save_timer.stop()
        self._flush_config_save()
        self.api_client.close()
        return True
