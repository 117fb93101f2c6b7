"""Global start/stop hotkey based on pynput."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore

logger = logging.getLogger(__name__)


class ToggleHotkeyAdapter:
    """Calls ``on_toggle`` once per physical press of the configured key.

    Auto-repeat while the key is held is ignored, and a second press within
    ``min_interval_s`` of the last accepted one is treated as key bounce.
    Keys are compared by their pynput string form, e.g. ``Key.f9`` or ``'v'``.
    """

    def __init__(
        self,
        hotkey_name: str = "Key.f9",
        min_interval_s: float = 0.3,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._hotkey_name = hotkey_name
        self._min_interval_s = min_interval_s
        self._clock = clock
        self._listener: Optional[object] = None
        self._on_toggle: Optional[Callable[[], None]] = None
        self._key_down = False
        self._last_accepted: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._listener is not None

    def start(self, on_toggle: Callable[[], None]) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")
        if self._listener is not None:
            raise RuntimeError("hotkey listener already running")

        self._on_toggle = on_toggle
        self._listener = keyboard.Listener(
            on_press=self._handle_press, on_release=self._handle_release
        )
        self._listener.start()
        logger.info("toggle hotkey bound to %s", self._hotkey_name)

    def stop(self) -> None:
        listener = self._listener
        self._listener = None
        self._on_toggle = None
        with self._lock:
            self._key_down = False
        if listener is not None:
            listener.stop()

    def _handle_press(self, key: object) -> None:
        if str(key) != self._hotkey_name:
            return
        now = self._clock()
        with self._lock:
            if self._key_down:
                return
            self._key_down = True
            if self._last_accepted is not None and now - self._last_accepted < self._min_interval_s:
                logger.debug("ignoring bounced press of %s", self._hotkey_name)
                return
            self._last_accepted = now
            on_toggle = self._on_toggle

        if on_toggle is None:
            return
        # An exception here would stop the pynput listener thread.
        try:
            on_toggle()
        except Exception:
            logger.exception("toggle handler failed")

    def _handle_release(self, key: object) -> None:
        if str(key) != self._hotkey_name:
            return
        with self._lock:
            self._key_down = False
