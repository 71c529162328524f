"""
LectureCrate - Lecture slide and subtitle downloader

This program is licensed under the GNU General Public License v3.0
See the license field in pyproject.toml; the full text is at https://www.gnu.org/licenses/gpl-3.0.html

SPDX-License-Identifier: GPL-3.0-or-later
"""
from __future__ import annotations

import ctypes
import os
import sys

from PySide6.QtCore import Qt
from PySide6.QtGui import QColor, QFont, QGuiApplication, QPainter, QPixmap
from PySide6.QtWidgets import QApplication, QMessageBox, QSplashScreen

from lecturecrate.core.config import APP_NAME, APP_VERSION

MUTEX_NAME = "LectureCrateMutex"


class SingleInstanceGuard:
    def __init__(self, mutex_name: str) -> None:
        self._mutex_name = str(mutex_name or "").strip() or MUTEX_NAME
        self._handle = None

    def acquire(self) -> bool:
        if os.name != "nt":
            return True
        try:
            kernel32 = ctypes.windll.kernel32
            kernel32.CreateMutexW.argtypes = [ctypes.c_void_p, ctypes.c_int, ctypes.c_wchar_p]
            kernel32.CreateMutexW.restype = ctypes.c_void_p
            handle = kernel32.CreateMutexW(None, 0, self._mutex_name)
            if not handle:
                return False
            error_already_exists = 183
            if kernel32.GetLastError() == error_already_exists:
                kernel32.CloseHandle(handle)
                return False
            self._handle = handle
            return True
        except (AttributeError, OSError):
            return True

    def release(self) -> None:
        if os.name != "nt" or self._handle is None:
            return
        try:
            ctypes.windll.kernel32.CloseHandle(self._handle)
        except (AttributeError, OSError):
            pass
        self._handle = None


def _build_loading_splash() -> QSplashScreen:
    screen = QGuiApplication.primaryScreen()
    dpr = max(1.0, float(screen.devicePixelRatio())) if screen is not None else 1.0
    width, height = 420, 150
    pixmap = QPixmap(int(round(width * dpr)), int(round(height * dpr)))
    pixmap.setDevicePixelRatio(dpr)
    pixmap.fill(QColor("#10141A"))
    painter = QPainter(pixmap)
    painter.setPen(QColor("#3B82F6"))
    painter.drawRect(0, 0, width - 1, height - 1)
    title_font = QFont()
    title_font.setBold(True)
    title_font.setPointSizeF(15.0)
    painter.setFont(title_font)
    painter.setPen(QColor("#F1F5F9"))
    painter.drawText(24, 64, f"{APP_NAME} is loading")
    subtitle_font = QFont()
    subtitle_font.setPointSizeF(10.0)
    painter.setFont(subtitle_font)
    painter.setPen(QColor("#94A3B8"))
    painter.drawText(24, 94, f"Version {APP_VERSION}")
    painter.end()
    return QSplashScreen(pixmap, Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint)


def main() -> int:
    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setApplicationDisplayName(APP_NAME)
    app.setApplicationVersion(APP_VERSION)
    app.setOrganizationName(APP_NAME)
    splash = _build_loading_splash()
    splash.show()
    app.processEvents()
    instance_guard = SingleInstanceGuard(MUTEX_NAME)
    if not instance_guard.acquire():
        splash.close()
        QMessageBox.information(None, APP_NAME, f"{APP_NAME} is already running.")
        return 0

    try:
        from lecturecrate.app_controller import AppController

        splash.showMessage("Loading main window...", Qt.AlignBottom | Qt.AlignHCenter, QColor("#94A3B8"))
        app.processEvents()
        try:
            controller = AppController(app)
        except RuntimeError as exc:
            splash.close()
            QMessageBox.critical(None, APP_NAME, str(exc))
            return 1
        controller.run()
        splash.finish(controller.window)
        return app.exec()
    finally:
        splash.close()
        instance_guard.release()


if __name__ == "__main__":
    raise SystemExit(main())
