"""Overlay window showing the live transcript and session status."""

from __future__ import annotations

try:
    from PySide6.QtCore import Qt, QTimer
    from PySide6.QtWidgets import QApplication, QLabel, QVBoxLayout, QWidget
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QTimer = None  # type: ignore
    QApplication = None  # type: ignore
    QLabel = object  # type: ignore
    QVBoxLayout = object  # type: ignore
    QWidget = object  # type: ignore

_PANEL_STYLE = "padding: 14px; background: rgba(0,0,0,190); border-radius: 12px;"
TRANSCRIPT_STYLE = "color: white; font-size: 18px;" + _PANEL_STYLE
STATUS_STYLE = "color: #9AD9CF; font-size: 13px; padding: 4px 14px;"
START_FAILURE_STYLE = "color: #FF6B6B; font-size: 13px; padding: 4px 14px;"
RUNTIME_FAILURE_STYLE = "color: #FFB347; font-size: 13px; padding: 4px 14px;"


class TranscriptOverlay(QWidget):
    def __init__(self) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self.setWindowFlags(
            Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool
        )
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setFixedWidth(640)

        self._status = QLabel("")
        self._status.setStyleSheet(STATUS_STYLE)
        self._transcript = QLabel("")
        self._transcript.setWordWrap(True)
        self._transcript.setStyleSheet(TRANSCRIPT_STYLE)

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._status)
        layout.addWidget(self._transcript)
        self.setLayout(layout)

        self._hide_timer: QTimer | None = None

    def _center_top(self) -> None:
        if QApplication is None:
            return
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.adjustSize()
        self.move(geom.x() + (geom.width() - self.width()) // 2, geom.y() + 40)

    def show_status(self, text: str) -> None:
        self._cancel_hide_timer()
        self._status.setStyleSheet(STATUS_STYLE)
        self._status.setText(text)
        self._center_top()
        self.show()

    def show_transcript(self, text: str) -> None:
        """Show the live view: committed text plus any in-progress partial."""
        self._cancel_hide_timer()
        self._transcript.setText(text or "Listening...")
        self._center_top()
        self.show()

    def show_start_failure(self, text: str) -> None:
        self._show_failure(f"Could not start: {text}", START_FAILURE_STYLE, 4000)

    def show_runtime_failure(self, text: str) -> None:
        self._show_failure(f"Stopped: {text}", RUNTIME_FAILURE_STYLE, 3000)

    def show_hint(self, text: str, hide_after_ms: int = 2000) -> None:
        self.show_status(text)
        self.hide_with_delay(hide_after_ms)

    def hide_with_delay(self, delay_ms: int = 400) -> None:
        self._cancel_hide_timer()
        if QTimer is not None:
            self._hide_timer = QTimer()
            self._hide_timer.setSingleShot(True)
            self._hide_timer.timeout.connect(self._reset_and_hide)
            self._hide_timer.start(delay_ms)

    def _show_failure(self, text: str, style: str, hide_after_ms: int) -> None:
        self._cancel_hide_timer()
        self._status.setStyleSheet(style)
        self._status.setText(text)
        self._center_top()
        self.show()
        self.hide_with_delay(hide_after_ms)

    def _reset_and_hide(self) -> None:
        self._transcript.setText("")
        self._status.setStyleSheet(STATUS_STYLE)
        self.hide()

    def _cancel_hide_timer(self) -> None:
        if self._hide_timer is not None:
            self._hide_timer.stop()
            self._hide_timer = None
