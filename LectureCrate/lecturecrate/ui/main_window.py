from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date

from PySide6.QtCore import QDate, Qt, Signal
from PySide6.QtGui import QCloseEvent, QIcon
from PySide6.QtWidgets import (
    QAbstractItemView,
    QButtonGroup,
    QCheckBox,
    QDateEdit,
    QFileDialog,
    QGroupBox,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QMainWindow,
    QPlainTextEdit,
    QProgressBar,
    QPushButton,
    QSplitter,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from ..controller.catalog import CatalogState
from ..controller.selection import course_key, selection_summary, session_key
from ..controller.subtitle_batch import SubtitleDialogState
from ..core.config import APP_NAME, APP_VERSION
from ..core.date_window import format_window
from ..core.models import AppConfig, Course, DateGranularity, Notice, NoticeLevel, Session, SourceRangeMode
from .dialogs import SubtitleFormatDialog, build_notice_box, exec_dialog

_GRANULARITY_LABELS: tuple[tuple[str, str], ...] = (
    (DateGranularity.DAY.value, "Day"),
    (DateGranularity.WEEK.value, "Week"),
    (DateGranularity.MONTH.value, "Month"),
)
_SOURCE_MODE_LABELS: tuple[tuple[str, str], ...] = (
    (SourceRangeMode.MINE.value, "My schedule"),
    (SourceRangeMode.ALL.value, "All courses"),
)
_COURSE_COLUMNS = ("", "Course", "Lecturer")
_SESSION_COLUMNS = ("", "Course", "Session", "Lecturer", "Pages")
_KEY_ROLE = Qt.UserRole


def _to_qdate(value: date) -> QDate:
    return QDate(value.year, value.month, value.day)


def _from_qdate(value: QDate) -> date:
    return date(value.year(), value.month(), value.day())


def _check_item(key: int, checked: bool) -> QTableWidgetItem:
    item = QTableWidgetItem()
    item.setFlags(Qt.ItemIsEnabled | Qt.ItemIsUserCheckable | Qt.ItemIsSelectable)
    item.setData(_KEY_ROLE, int(key))
    item.setCheckState(Qt.Checked if checked else Qt.Unchecked)
    return item


def _text_item(text: str) -> QTableWidgetItem:
    item = QTableWidgetItem(str(text or ""))
    item.setFlags(Qt.ItemIsEnabled | Qt.ItemIsSelectable)
    return item


def _build_table(columns: Sequence[str], parent: QWidget) -> QTableWidget:
    table = QTableWidget(0, len(columns), parent)
    table.setHorizontalHeaderLabels(list(columns))
    table.verticalHeader().setVisible(False)
    table.setSelectionBehavior(QAbstractItemView.SelectRows)
    table.setEditTriggers(QAbstractItemView.NoEditTriggers)
    table.setAlternatingRowColors(True)
    header = table.horizontalHeader()
    header.setSectionResizeMode(0, QHeaderView.ResizeToContents)
    for column in range(1, len(columns)):
        header.setSectionResizeMode(column, QHeaderView.Stretch)
    return table


class MainWindow(QMainWindow):
    sourceModeChanged = Signal(str)
    granularityChanged = Signal(str)
    anchorChanged = Signal(object)
    dayRangeChanged = Signal(object, object)
    searchRequested = Signal(str, str)
    deriveRequested = Signal()
    refreshRequested = Signal()
    sourceCheckedChanged = Signal(list)
    targetCheckedChanged = Signal(list)
    downloadSlidesRequested = Signal()
    cancelSlidesRequested = Signal()
    subtitleDialogRequested = Signal()
    subtitleFormatChanged = Signal(str)
    subtitleConfirmRequested = Signal()
    subtitleCancelRequested = Signal()
    saveLocationChanged = Signal(str)
    toPdfChanged = Signal(bool)
    dedupChanged = Signal(bool)

    def __init__(self, *, icon_path: str = "") -> None:
        super().__init__()
        self._close_handler: Callable[[], bool] | None = None
        self._rendering = False
        self._shown_courses: tuple[Course, ...] | None = None
        self._shown_sessions: tuple[Session, ...] | None = None
        self.setWindowTitle(f"{APP_NAME} {APP_VERSION}")
        if icon_path:
            self.setWindowIcon(QIcon(icon_path))
        self.resize(1080, 760)
        self._build_ui()

    def _build_ui(self) -> None:
        root = QWidget(self)
        layout = QVBoxLayout(root)
        layout.addLayout(self._build_range_row(root))
        layout.addLayout(self._build_search_row(root))

        splitter = QSplitter(Qt.Horizontal, root)
        self.source_box = QGroupBox("Courses", splitter)
        source_layout = QVBoxLayout(self.source_box)
        self.source_summary_label = QLabel(self.source_box)
        self.source_table = _build_table(_COURSE_COLUMNS, self.source_box)
        self.source_table.itemChanged.connect(self._on_source_item_changed)
        self.derive_button = QPushButton("Show slide decks", self.source_box)
        self.derive_button.clicked.connect(self.deriveRequested.emit)
        source_layout.addWidget(self.source_summary_label)
        source_layout.addWidget(self.source_table)
        source_layout.addWidget(self.derive_button)

        target_box = QGroupBox("Sessions", splitter)
        target_layout = QVBoxLayout(target_box)
        target_header = QHBoxLayout()
        self.target_summary_label = QLabel(target_box)
        self.refresh_button = QPushButton("Refresh", target_box)
        self.refresh_button.clicked.connect(self.refreshRequested.emit)
        target_header.addWidget(self.target_summary_label, 1)
        target_header.addWidget(self.refresh_button)
        self.target_table = _build_table(_SESSION_COLUMNS, target_box)
        self.target_table.itemChanged.connect(self._on_target_item_changed)
        target_layout.addLayout(target_header)
        target_layout.addWidget(self.target_table)
        splitter.addWidget(self.source_box)
        splitter.addWidget(target_box)
        splitter.setStretchFactor(1, 2)
        layout.addWidget(splitter, 1)

        layout.addLayout(self._build_action_row(root))
        layout.addLayout(self._build_output_row(root))

        self.console_output = QPlainTextEdit(root)
        self.console_output.setReadOnly(True)
        self.console_output.setMaximumBlockCount(2000)
        self.console_output.setFixedHeight(140)
        layout.addWidget(self.console_output)
        self.setCentralWidget(root)

        self.subtitle_dialog = SubtitleFormatDialog(self)
        self.subtitle_dialog.formatChanged.connect(self.subtitleFormatChanged.emit)
        self.subtitle_dialog.confirmRequested.connect(self.subtitleConfirmRequested.emit)
        self.subtitle_dialog.cancelRequested.connect(self.subtitleCancelRequested.emit)

    def _build_range_row(self, parent: QWidget) -> QHBoxLayout:
        row = QHBoxLayout()
        self.source_mode_group = QButtonGroup(parent)
        self.source_mode_group.setExclusive(True)
        for mode, label in _SOURCE_MODE_LABELS:
            button = QPushButton(label, parent)
            button.setCheckable(True)
            button.setProperty("mode", mode)
            self.source_mode_group.addButton(button)
            row.addWidget(button)
        self.source_mode_group.buttonClicked.connect(
            lambda button: self.sourceModeChanged.emit(str(button.property("mode")))
        )
        row.addSpacing(16)

        self.granularity_group = QButtonGroup(parent)
        self.granularity_group.setExclusive(True)
        for granularity, label in _GRANULARITY_LABELS:
            button = QPushButton(label, parent)
            button.setCheckable(True)
            button.setProperty("granularity", granularity)
            self.granularity_group.addButton(button)
            row.addWidget(button)
        self.granularity_group.buttonClicked.connect(
            lambda button: self.granularityChanged.emit(str(button.property("granularity")))
        )

        self.start_date_edit = QDateEdit(parent)
        self.start_date_edit.setCalendarPopup(True)
        self.start_date_edit.setDisplayFormat("yyyy-MM-dd")
        self.start_date_edit.dateChanged.connect(self._on_date_edited)
        self.end_date_edit = QDateEdit(parent)
        self.end_date_edit.setCalendarPopup(True)
        self.end_date_edit.setDisplayFormat("yyyy-MM-dd")
        self.end_date_edit.dateChanged.connect(self._on_date_edited)
        self.window_label = QLabel(parent)
        row.addWidget(self.start_date_edit)
        row.addWidget(self.end_date_edit)
        row.addWidget(self.window_label, 1)
        return row

    def _build_search_row(self, parent: QWidget) -> QHBoxLayout:
        row = QHBoxLayout()
        self.course_name_input = QLineEdit(parent)
        self.course_name_input.setPlaceholderText("Course name")
        self.teacher_name_input = QLineEdit(parent)
        self.teacher_name_input.setPlaceholderText("Teacher name")
        self.search_button = QPushButton("Search", parent)
        self.search_button.clicked.connect(self._emit_search)
        self.course_name_input.returnPressed.connect(self._emit_search)
        self.teacher_name_input.returnPressed.connect(self._emit_search)
        row.addWidget(self.course_name_input, 1)
        row.addWidget(self.teacher_name_input, 1)
        row.addWidget(self.search_button)
        self._search_widgets = (self.course_name_input, self.teacher_name_input, self.search_button)
        return row

    def _build_action_row(self, parent: QWidget) -> QHBoxLayout:
        row = QHBoxLayout()
        self.download_slides_button = QPushButton("Download slides", parent)
        self.download_slides_button.clicked.connect(self.downloadSlidesRequested.emit)
        self.cancel_slides_button = QPushButton("Stop", parent)
        self.cancel_slides_button.setEnabled(False)
        self.cancel_slides_button.clicked.connect(self.cancelSlidesRequested.emit)
        self.download_subtitles_button = QPushButton("Download subtitles", parent)
        self.download_subtitles_button.clicked.connect(self.subtitleDialogRequested.emit)
        self.slide_progress = QProgressBar(parent)
        self.slide_progress.setRange(0, 100)
        self.slide_progress.setValue(0)
        self.slide_progress.setTextVisible(True)
        row.addWidget(self.download_slides_button)
        row.addWidget(self.cancel_slides_button)
        row.addWidget(self.download_subtitles_button)
        row.addWidget(self.slide_progress, 1)
        return row

    def _build_output_row(self, parent: QWidget) -> QHBoxLayout:
        row = QHBoxLayout()
        self.save_path_input = QLineEdit(parent)
        self.save_path_input.setReadOnly(True)
        browse_button = QPushButton("Browse...", parent)
        browse_button.clicked.connect(self._choose_save_location)
        self.to_pdf_checkbox = QCheckBox("Save slides as PDF", parent)
        self.to_pdf_checkbox.toggled.connect(self.toPdfChanged.emit)
        self.dedup_checkbox = QCheckBox("Skip duplicate pages", parent)
        self.dedup_checkbox.toggled.connect(self.dedupChanged.emit)
        row.addWidget(QLabel("Save to:", parent))
        row.addWidget(self.save_path_input, 1)
        row.addWidget(browse_button)
        row.addWidget(self.to_pdf_checkbox)
        row.addWidget(self.dedup_checkbox)
        return row

    def set_close_handler(self, handler: Callable[[], bool]) -> None:
        self._close_handler = handler

    def set_config(self, config: AppConfig) -> None:
        self.save_path_input.setText(str(config.save_path or ""))
        for checkbox, value in (
            (self.to_pdf_checkbox, config.to_pdf),
            (self.dedup_checkbox, config.enable_image_dedup),
        ):
            checkbox.blockSignals(True)
            checkbox.setChecked(bool(value))
            checkbox.blockSignals(False)
        self.subtitle_dialog.set_format(config.subtitle_format)

    def _choose_save_location(self) -> None:
        selected = QFileDialog.getExistingDirectory(self, "Choose download folder", self.save_path_input.text())
        if selected:
            self.save_path_input.setText(selected)
            self.saveLocationChanged.emit(selected)

    def _emit_search(self) -> None:
        self.searchRequested.emit(self.course_name_input.text(), self.teacher_name_input.text())

    def _on_date_edited(self, _value: QDate) -> None:
        if self._rendering:
            return
        start = _from_qdate(self.start_date_edit.date())
        checked = self.granularity_group.checkedButton()
        granularity = str(checked.property("granularity")) if checked is not None else ""
        if granularity == DateGranularity.DAY.value:
            self.dayRangeChanged.emit(start, _from_qdate(self.end_date_edit.date()))
        else:
            self.anchorChanged.emit(start)

    @staticmethod
    def _checked_keys(table: QTableWidget) -> list[int]:
        keys: list[int] = []
        for row in range(table.rowCount()):
            item = table.item(row, 0)
            if item is not None and item.checkState() == Qt.Checked:
                keys.append(int(item.data(_KEY_ROLE)))
        return keys

    def _on_source_item_changed(self, item: QTableWidgetItem) -> None:
        if self._rendering or item.column() != 0:
            return
        self.sourceCheckedChanged.emit(self._checked_keys(self.source_table))

    def _on_target_item_changed(self, item: QTableWidgetItem) -> None:
        if self._rendering or item.column() != 0:
            return
        self.targetCheckedChanged.emit(self._checked_keys(self.target_table))

    def render_catalog(self, state: CatalogState) -> None:
        self._rendering = True
        try:
            self._render_range(state)
            self._render_courses(state)
            self._render_sessions(state)
        finally:
            self._rendering = False

    def _render_range(self, state: CatalogState) -> None:
        for button in self.source_mode_group.buttons():
            button.setChecked(button.property("mode") == state.source_mode)
        for button in self.granularity_group.buttons():
            button.setChecked(button.property("granularity") == state.granularity)
        day_mode = state.granularity == DateGranularity.DAY.value
        self.start_date_edit.setDate(_to_qdate(state.window.start_at))
        self.end_date_edit.setDate(_to_qdate(state.window.end_at))
        self.end_date_edit.setVisible(day_mode)
        self.window_label.setText(format_window(state.window))

        all_mode = state.source_mode == SourceRangeMode.ALL.value
        for widget in self._search_widgets:
            widget.setVisible(all_mode)
        self.source_box.setVisible(all_mode)
        # The date window only drives "my schedule"; each change there refetches the target list.
        window_enabled = not all_mode and not state.loading_target
        for button in self.granularity_group.buttons():
            button.setEnabled(window_enabled)
        self.start_date_edit.setEnabled(window_enabled)
        self.end_date_edit.setEnabled(window_enabled)
        modes_enabled = not state.loading_source and not state.loading_target
        for button in self.source_mode_group.buttons():
            button.setEnabled(modes_enabled)
        self.search_button.setEnabled(not state.loading_source)

    def _render_courses(self, state: CatalogState) -> None:
        if state.source_list != self._shown_courses:
            self.source_table.setRowCount(len(state.source_list))
            for row, course in enumerate(state.source_list):
                self.source_table.setItem(row, 0, _check_item(course_key(course), False))
                self.source_table.setItem(row, 1, _text_item(course.course_name))
                self.source_table.setItem(row, 2, _text_item(course.lecturer_name))
            self._shown_courses = state.source_list
        for row in range(self.source_table.rowCount()):
            item = self.source_table.item(row, 0)
            if item is None:
                continue
            checked = int(item.data(_KEY_ROLE)) in state.source_selection
            item.setCheckState(Qt.Checked if checked else Qt.Unchecked)
        text = f"{len(state.source_selection)} of {len(state.source_list)} selected"
        if state.loading_source:
            text = "Searching..."
        self.source_summary_label.setText(text)
        self.derive_button.setEnabled(not state.loading_target)

    def _render_sessions(self, state: CatalogState) -> None:
        if state.target_list != self._shown_sessions:
            self.target_table.setRowCount(len(state.target_list))
            for row, session in enumerate(state.target_list):
                self.target_table.setItem(row, 0, _check_item(session_key(session), False))
                self.target_table.setItem(row, 1, _text_item(session.course_name))
                self.target_table.setItem(row, 2, _text_item(session.sub_name))
                self.target_table.setItem(row, 3, _text_item(session.lecturer_name))
                self.target_table.setItem(row, 4, _text_item(str(session.page_count)))
            self._shown_sessions = state.target_list
        for row in range(self.target_table.rowCount()):
            item = self.target_table.item(row, 0)
            if item is None:
                continue
            checked = int(item.data(_KEY_ROLE)) in state.target_selection
            item.setCheckState(Qt.Checked if checked else Qt.Unchecked)
        summary = selection_summary(state.target_list, state.target_selection)
        if state.loading_target:
            text = "Loading sessions..."
        elif not state.target_list:
            text = "No sessions"
        else:
            text = f"{summary.selected} selected, {summary.pages} pages"
        self.target_summary_label.setText(text)
        self.refresh_button.setEnabled(not state.loading_target)

    def render_subtitle_dialog(self, dialog: SubtitleDialogState, *, selected_count: int) -> None:
        self.subtitle_dialog.set_format(dialog.format)
        self.subtitle_dialog.set_selected_count(selected_count)
        self.subtitle_dialog.set_busy(dialog.busy)
        self.download_subtitles_button.setEnabled(not dialog.busy)
        if dialog.visible and not self.subtitle_dialog.isVisible():
            self.subtitle_dialog.show()
        elif not dialog.visible and self.subtitle_dialog.isVisible():
            self.subtitle_dialog.hide()

    def set_slides_running(self, running: bool) -> None:
        self.download_slides_button.setEnabled(not running)
        self.cancel_slides_button.setEnabled(bool(running))
        if running:
            self.slide_progress.setValue(0)

    def set_slide_progress(self, percent: float, text: str = "") -> None:
        clamped = max(0.0, min(100.0, float(percent)))
        self.slide_progress.setValue(int(round(clamped)))
        if text:
            self.slide_progress.setFormat(f"{text} (%p%)")

    def show_notice(self, notice: Notice) -> None:
        line = notice.title if not notice.description else f"{notice.title}: {notice.description}"
        self.append_log(line)
        if notice.level in (NoticeLevel.INFO.value, NoticeLevel.SUCCESS.value):
            self.statusBar().showMessage(line, 8000)
            return
        exec_dialog(build_notice_box(self, APP_NAME, notice))

    def append_log(self, text: str) -> None:
        value = str(text or "").strip()
        if not value:
            return
        self.console_output.appendPlainText(value)
        self.console_output.verticalScrollBar().setValue(self.console_output.verticalScrollBar().maximum())

    def closeEvent(self, event: QCloseEvent) -> None:
        if self._close_handler is not None and not self._close_handler():
            event.ignore()
            return
        event.accept()
