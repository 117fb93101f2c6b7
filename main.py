"""Application entrypoint."""

from __future__ import annotations

import logging
import sys
import threading
import webbrowser
from typing import Optional

from command_router import CommandRouter
from config import JsonConfigStore
from credentials import HttpCredentialProvider, StaticCredentialProvider, close_provider
from errors import ERROR_MESSAGES, START_FAILURES
from hotkey import ToggleHotkeyAdapter
from interfaces import CredentialProvider
from models import CommandBinding, SessionState
from overlay import TranscriptOverlay
from recognizer import DashscopeStreamClient
from recorder import SoundDeviceRecorder
from session_controller import SessionController

try:
    from PySide6.QtCore import QObject, QSize, Signal
    from PySide6.QtGui import QAction, QBrush, QColor, QIcon, QPainter, QPixmap
    from PySide6.QtWidgets import QApplication, QInputDialog, QLineEdit, QMenu, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger("voice_session")


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


ICON_IDLE = "#888888"       # grey
ICON_BUSY = "#E0C040"       # yellow
ICON_STREAMING = "#FF4444"  # red
ICON_ERROR = "#FF8800"      # orange

STARTING_STATES = {
    SessionState.ACQUIRING_CREDENTIAL.value,
    SessionState.ACQUIRING_DEVICE.value,
    SessionState.CONNECTING.value,
}


def build_credentials(config_store: JsonConfigStore) -> CredentialProvider:
    token_url = config_store.get_token_url()
    if token_url:
        return HttpCredentialProvider(token_url)
    return StaticCredentialProvider(config_store.get_api_key())


class UIBridge(QObject):
    transcript_signal = Signal(str)
    error_signal = Signal(str, str)  # code, message
    state_signal = Signal(str, str)  # from_state, to_state
    hint_signal = Signal(str)


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.config_store = JsonConfigStore()
        logging.basicConfig(
            level=self.config_store.get_log_level(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        self.overlay = TranscriptOverlay()
        self.ui = UIBridge()
        self.ui.transcript_signal.connect(self.overlay.show_transcript)
        self.ui.error_signal.connect(self._on_error_ui)
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.hint_signal.connect(self.overlay.show_hint)

        self.router = CommandRouter(
            [
                CommandBinding("create course", lambda: self._open_page("/school/admin/create")),
                CommandBinding("join course", lambda: self._open_page("/courses/join")),
                CommandBinding("submit task", self._submit_task),
            ],
            fallback=self._on_unrecognized,
        )
        self.controller = self._build_controller()
        self.hotkey = ToggleHotkeyAdapter(hotkey_name=self.config_store.get_hotkey())

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.tray.setToolTip("Voice Session — Ready")
        self._setup_menu()
        self.tray.show()

    def _build_controller(self) -> SessionController:
        self.credentials = build_credentials(self.config_store)
        return SessionController(
            credentials=self.credentials,
            recorder=SoundDeviceRecorder(),
            stream_client=DashscopeStreamClient(),
            stream_options=self.config_store.get_stream_options(),
            chunk_ms=self.config_store.get_chunk_ms(),
            on_state_change=self._on_state_change,
            on_transcript=self.router.handle_update,
            on_preview=self.ui.transcript_signal.emit,
            on_error=self.ui.error_signal.emit,
        )

    def _setup_menu(self) -> None:
        menu = QMenu()
        entries = (
            ("Start / Stop Listening", self.toggle_session),
            ("Set API Key", self._set_api_key),
            ("Set Token Endpoint", self._set_token_url),
            ("Set Hotkey", self._set_hotkey),
            None,
            ("Quit", self.quit),
        )
        for entry in entries:
            if entry is None:
                menu.addSeparator()
                continue
            label, handler = entry
            action = QAction(label, menu)
            action.triggered.connect(handler)
            menu.addAction(action)
        self.tray.setContextMenu(menu)

    def _prompt(self, title: str, label: str, current: str = "", secret: bool = False) -> Optional[str]:
        echo = QLineEdit.EchoMode.Password if secret else QLineEdit.EchoMode.Normal
        value, ok = QInputDialog.getText(None, title, label, echo, current)
        if not ok:
            return None
        return value.strip()

    def _set_api_key(self) -> None:
        value = self._prompt(
            "API Key", "DashScope API key (empty uses DASHSCOPE_API_KEY)", secret=True
        )
        if value is None:
            return
        self.config_store.set_api_key(value)
        self._replace_controller()
        self.tray.showMessage("Voice Session", "API key applied.")

    def _set_token_url(self) -> None:
        value = self._prompt(
            "Token Endpoint",
            'URL returning {"token": ...} (empty uses the API key)',
            self.config_store.get_token_url(),
        )
        if value is None:
            return
        self.config_store.set_token_url(value)
        self._replace_controller()
        self.tray.showMessage("Voice Session", "Token endpoint applied.")

    def _set_hotkey(self) -> None:
        value = self._prompt("Hotkey", "pynput key name, e.g. Key.f9", self.config_store.get_hotkey())
        if not value:
            return
        self.config_store.set_hotkey(value)
        self.hotkey.stop()
        self.hotkey = ToggleHotkeyAdapter(hotkey_name=value)
        self._start_hotkey()

    def _replace_controller(self) -> None:
        self.controller.stop_session()
        close_provider(self.credentials)
        self.controller = self._build_controller()

    # ------------------------------------------------------------------
    # Voice commands
    # ------------------------------------------------------------------

    def _open_page(self, path: str) -> None:
        url = self.config_store.get_app_base_url() + path
        logger.info("opening %s", url)
        webbrowser.open(url)

    def _submit_task(self) -> None:
        logger.info("user is attempting to submit a task")
        self.ui.hint_signal.emit("Submitting task...")

    def _on_unrecognized(self) -> None:
        logger.debug("no voice command in latest transcript")

    # ------------------------------------------------------------------
    # Callbacks (called from worker threads → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: SessionState, to_state: SessionState) -> None:
        if to_state == SessionState.ACQUIRING_CREDENTIAL:
            self.router.reset()
        self.ui.state_signal.emit(from_state.value, to_state.value)

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _on_error_ui(self, code: str, message: str) -> None:
        text = message or ERROR_MESSAGES.get(code, code)
        if code in START_FAILURES:
            self.overlay.show_start_failure(text)
        else:
            self.overlay.show_runtime_failure(text)

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        if to_state in STARTING_STATES:
            self.tray.setIcon(_create_icon(ICON_BUSY))
            self.tray.setToolTip("Voice Session — Starting...")
            self.overlay.show_status("Starting...")
        elif to_state == SessionState.STREAMING.value:
            self.tray.setIcon(_create_icon(ICON_STREAMING))
            self.tray.setToolTip("Voice Session — Listening...")
            self.overlay.show_status("Listening")
            self.overlay.show_transcript("")
        elif to_state == SessionState.ERROR.value:
            self.tray.setIcon(_create_icon(ICON_ERROR))
        elif to_state == SessionState.IDLE.value:
            self.tray.setIcon(_create_icon(ICON_IDLE))
            self.tray.setToolTip("Voice Session — Ready")
            if from_state != SessionState.ERROR.value:
                self.overlay.hide_with_delay(400)

    # ------------------------------------------------------------------
    # Session control
    # ------------------------------------------------------------------

    def toggle_session(self) -> None:
        # Acquisition blocks on network and device; keep it off the Qt thread.
        if self.controller.state == SessionState.IDLE:
            target = self.controller.start_session
        else:
            target = self.controller.stop_session
        threading.Thread(target=target, daemon=True).start()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _start_hotkey(self) -> None:
        try:
            self.hotkey.start(on_toggle=self.toggle_session)
        except Exception as exc:
            logger.warning("hotkey disabled: %s", exc)
            self.overlay.show_hint(f"Hotkey disabled: {exc}", 3000)

    def run(self) -> int:
        self._start_hotkey()
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self.controller.stop_session()
        close_provider(self.credentials)
        self.app.quit()


def main() -> int:
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
