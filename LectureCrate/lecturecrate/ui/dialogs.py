from __future__ import annotations

from collections.abc import Callable

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QIcon
from PySide6.QtWidgets import (
    QApplication,
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLabel,
    QMessageBox,
    QVBoxLayout,
    QWidget,
)

from ..core.models import SUBTITLE_FORMAT_LABELS, Notice, NoticeLevel

_NOTICE_ICONS = {
    NoticeLevel.INFO.value: QMessageBox.Information,
    NoticeLevel.SUCCESS.value: QMessageBox.Information,
    NoticeLevel.WARNING.value: QMessageBox.Warning,
    NoticeLevel.ERROR.value: QMessageBox.Critical,
}


def build_message_box(
    *,
    parent: QWidget,
    app_name: str,
    icon: QMessageBox.Icon,
    title: str,
    text: str,
    informative_text: str = "",
    window_icon: QIcon | None = None,
    buttons: QMessageBox.StandardButtons = QMessageBox.Ok,
) -> QMessageBox:
    box = QMessageBox(parent)
    box.setOption(QMessageBox.DontUseNativeDialog, True)
    box.setIcon(icon)
    box.setWindowTitle(str(title or app_name))
    box.setText(str(text or ""))
    if informative_text:
        box.setInformativeText(str(informative_text))
    box.setStandardButtons(buttons)
    if window_icon is not None and not window_icon.isNull():
        box.setWindowIcon(window_icon)
    return box


def build_notice_box(parent: QWidget, app_name: str, notice: Notice) -> QMessageBox:
    return build_message_box(
        parent=parent,
        app_name=app_name,
        icon=_NOTICE_ICONS.get(notice.level, QMessageBox.Information),
        title=app_name,
        text=notice.title,
        informative_text=notice.description,
    )


def exec_dialog(dialog: QWidget, *, on_after: Callable[[], None] | None = None) -> int:
    try:
        return int(dialog.exec())
    finally:
        if on_after is not None:
            on_after()
        else:
            while QApplication.overrideCursor() is not None:
                QApplication.restoreOverrideCursor()


class SubtitleFormatDialog(QDialog):
    """Format picker that stays open while the batch runs.

    Accepting emits ``confirmRequested`` instead of closing; the owner hides
    the dialog once the batch has finished.
    """

    confirmRequested = Signal()
    cancelRequested = Signal()
    formatChanged = Signal(str)

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Download subtitles")
        self.setModal(True)
        self._busy = False

        self.summary_label = QLabel(self)
        self.format_combo = QComboBox(self)
        for value, label in SUBTITLE_FORMAT_LABELS.items():
            self.format_combo.addItem(label, value)
        self.format_combo.currentIndexChanged.connect(self._on_format_index_changed)

        form = QFormLayout()
        form.addRow("Format:", self.format_combo)

        self.buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel, Qt.Horizontal, self)
        self.buttons.button(QDialogButtonBox.Ok).setText("Download")
        self.buttons.accepted.connect(self.accept)
        self.buttons.rejected.connect(self.reject)

        layout = QVBoxLayout(self)
        layout.addWidget(self.summary_label)
        layout.addLayout(form)
        layout.addWidget(self.buttons)

    def _on_format_index_changed(self, index: int) -> None:
        value = self.format_combo.itemData(index)
        if value:
            self.formatChanged.emit(str(value))

    def set_selected_count(self, count: int) -> None:
        self.summary_label.setText(f"{int(count)} session(s) selected")

    def set_format(self, format_choice: str) -> None:
        index = self.format_combo.findData(str(format_choice or ""))
        if index >= 0 and index != self.format_combo.currentIndex():
            self.format_combo.blockSignals(True)
            self.format_combo.setCurrentIndex(index)
            self.format_combo.blockSignals(False)

    def set_busy(self, busy: bool) -> None:
        self._busy = bool(busy)
        self.format_combo.setEnabled(not self._busy)
        self.buttons.setEnabled(not self._busy)
        ok_button = self.buttons.button(QDialogButtonBox.Ok)
        ok_button.setText("Downloading..." if self._busy else "Download")

    def accept(self) -> None:
        if not self._busy:
            self.confirmRequested.emit()

    def reject(self) -> None:
        if not self._busy:
            self.cancelRequested.emit()
