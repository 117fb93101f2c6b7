"""Correlate assistant utterances with on-screen controls and highlight them."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, Sequence

from errors import ElementNotFound
from interfaces import HighlightSurface
from models import UIElementBinding

logger = logging.getLogger(__name__)

HIGHLIGHT_DURATION_S = 5.0

INTERACTION_KEYWORDS = (
    "click", "tap", "press", "select", "choose", "find", "look for",
    "go to", "navigate", "open", "access", "enter", "fill", "type",
)

ELEMENT_BINDINGS = tuple(
    UIElementBinding(phrase, locator)
    for phrase, locator in (
        # Account creation
        ("create account", "#create-account-btn"),
        ("sign up", "#signup-button"),
        ("signup", "#signup-button"),
        ("email", "#email-input"),
        ("email field", "#email-input"),
        ("password", "#password-input"),
        ("password field", "#password-input"),
        ("confirm password", "#confirm-password-input"),
        # Tasks
        ("mark complete", "#mark-complete-btn"),
        ("next task", "#next-task-btn"),
        ("next", "#next-task-btn"),
        ("previous task", "#prev-task-btn"),
        ("previous", "#prev-task-btn"),
        ("the quiz", "#quiz-container"),
        ("quiz", "#quiz-container"),
        # Courses
        ("create course", "#create-course-btn"),
        ("join course", "#join-course-btn"),
        ("course name", "#course-name-input"),
        ("course code", "#course-code-input"),
        ("enroll", "#enroll-btn"),
        ("enrollment", "#enroll-btn"),
        ("your courses", "#course-grid"),
        ("list of courses", "#course-grid"),
        ("course list", "#course-grid"),
        ("courses", "#course-grid"),
        # Submission
        ("submit", "#submit-btn"),
        ("submit task", "#submit-task-btn"),
        ("upload", "#upload-btn"),
        ("storage queue", ".storage-queue-icon"),
        ("storage-queue", ".storage-queue-icon"),
        ("offline submit", "#offline-submit-btn"),
        ("file upload", "#file-upload-input"),
        # Navigation
        ("dashboard", "#dashboard-link"),
        ("profile", "#profile-link"),
        ("settings", "#settings-link"),
    )
)

TimerFactory = Callable[..., Any]
HighlightCallback = Callable[[Optional[str]], None]


def match_utterance(
    text: str,
    bindings: Sequence[UIElementBinding] = ELEMENT_BINDINGS,
    keywords: Sequence[str] = INTERACTION_KEYWORDS,
) -> Optional[UIElementBinding]:
    lowered = text.lower()
    if not any(keyword in lowered for keyword in keywords):
        return None
    return next((b for b in bindings if b.phrase in lowered), None)


class HighlightCorrelator:
    def __init__(
        self,
        surface: HighlightSurface,
        bindings: Sequence[UIElementBinding] = ELEMENT_BINDINGS,
        keywords: Sequence[str] = INTERACTION_KEYWORDS,
        duration_s: float = HIGHLIGHT_DURATION_S,
        timer_factory: TimerFactory = threading.Timer,
        on_highlight: Optional[HighlightCallback] = None,
    ) -> None:
        self._surface = surface
        self._bindings = tuple(bindings)
        self._keywords = tuple(keyword.lower() for keyword in keywords)
        self._duration_s = duration_s
        self._timer_factory = timer_factory
        self._on_highlight = on_highlight

        self._lock = threading.RLock()
        self._locator: Optional[str] = None
        self._element: Any = None
        self._timer: Any = None
        self._generation = 0

    @property
    def current(self) -> Optional[str]:
        return self._locator

    def handle_utterance(self, text: str) -> Optional[str]:
        binding = match_utterance(text, self._bindings, self._keywords)
        if binding is None:
            return None
        if self.highlight(binding.locator):
            return binding.locator
        return None

    def highlight(self, locator: str) -> bool:
        with self._lock:
            try:
                element = self._surface.locate(locator)
            except ElementNotFound:
                logger.warning("highlight target not found: %s", locator)
                return False

            superseded = self._locator is not None
            self._clear_locked(notify=False)
            try:
                self._surface.apply_highlight(element)
                self._surface.scroll_into_view(element)
            except Exception:
                logger.exception("failed to highlight %s", locator)
                self._safe_remove(element)
                if superseded:
                    self._notify(None)
                return False

            self._generation += 1
            self._locator = locator
            self._element = element
            timer = self._timer_factory(self._duration_s, self._expire, args=(self._generation,))
            timer.daemon = True
            timer.start()
            self._timer = timer
            logger.info("highlighted element %s", locator)
            self._notify(locator)
            return True

    def clear(self) -> None:
        with self._lock:
            self._clear_locked(notify=True)

    def _expire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._clear_locked(notify=True)

    def _clear_locked(self, notify: bool) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        element = self._element
        had_highlight = self._locator is not None
        self._generation += 1
        self._locator = None
        self._element = None
        if element is not None:
            self._safe_remove(element)
        if had_highlight and notify:
            self._notify(None)

    def _safe_remove(self, element: Any) -> None:
        try:
            self._surface.remove_highlight(element)
        except Exception:
            logger.warning("failed to remove highlight", exc_info=True)

    def _notify(self, locator: Optional[str]) -> None:
        if self._on_highlight:
            self._on_highlight(locator)
