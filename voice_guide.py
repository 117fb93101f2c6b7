"""Voice guide component: a conversational agent call that highlights controls."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List, Optional, Sequence

from highlighter import (
    ELEMENT_BINDINGS,
    HIGHLIGHT_DURATION_S,
    HighlightCallback,
    HighlightCorrelator,
    TimerFactory,
)
from interfaces import AgentClient, HighlightSurface
from models import AgentMessage, UIElementBinding

logger = logging.getLogger(__name__)

CALL_START = "call-start"
CALL_END = "call-end"
SPEECH_START = "speech-start"
SPEECH_END = "speech-end"
MESSAGE = "message"
ERROR = "error"

MessageCallback = Callable[[AgentMessage], None]


class VoiceGuide:
    def __init__(
        self,
        client: AgentClient,
        assistant_id: str,
        correlator: HighlightCorrelator,
        on_message: Optional[MessageCallback] = None,
    ) -> None:
        self._client = client
        self._assistant_id = assistant_id
        self._correlator = correlator
        self._on_message = on_message
        self._lock = threading.Lock()
        self._mounted = False
        self._handlers_registered = False
        self.is_connected = False
        self.is_speaking = False
        self._transcript: List[AgentMessage] = []

    @property
    def transcript(self) -> List[AgentMessage]:
        with self._lock:
            return list(self._transcript)

    @property
    def current_highlight(self) -> Optional[str]:
        return self._correlator.current

    def mount(self) -> None:
        if self._mounted:
            return
        self._mounted = True
        if not self._handlers_registered:
            self._client.on(CALL_START, self._on_call_start)
            self._client.on(CALL_END, self._on_call_end)
            self._client.on(SPEECH_START, self._on_speech_start)
            self._client.on(SPEECH_END, self._on_speech_end)
            self._client.on(MESSAGE, self._on_message_event)
            self._client.on(ERROR, self._on_error)
            self._handlers_registered = True

    def unmount(self) -> None:
        if not self._mounted:
            return
        self._mounted = False
        self._correlator.clear()
        try:
            self._client.stop()
        except Exception:
            logger.warning("failed to stop voice agent", exc_info=True)
        self.is_connected = False
        self.is_speaking = False

    def start_call(self) -> None:
        if not self._mounted:
            raise RuntimeError("voice guide is not mounted")
        self._client.start(self._assistant_id)

    def end_call(self) -> None:
        self._correlator.clear()
        self._client.stop()

    # ------------------------------------------------------------------
    # Agent events
    # ------------------------------------------------------------------

    def _on_call_start(self, *_: Any) -> None:
        logger.info("voice guide call started")
        self.is_connected = True

    def _on_call_end(self, *_: Any) -> None:
        logger.info("voice guide call ended")
        self.is_connected = False
        self.is_speaking = False
        self._correlator.clear()

    def _on_speech_start(self, *_: Any) -> None:
        self.is_speaking = True

    def _on_speech_end(self, *_: Any) -> None:
        self.is_speaking = False

    def _on_error(self, error: Any = None) -> None:
        logger.error("voice agent error: %s", error)

    def _on_message_event(self, message: Any) -> None:
        if not isinstance(message, dict) or message.get("type") != "transcript":
            return
        if message.get("transcriptType") == "partial":
            return
        entry = AgentMessage(role=str(message.get("role", "")), text=str(message.get("transcript", "")))
        with self._lock:
            self._transcript.append(entry)
        if self._on_message:
            self._on_message(entry)
        if entry.role == "assistant" and self._mounted:
            self._correlator.handle_utterance(entry.text)


def create_voice_guide(
    client: AgentClient,
    surface: HighlightSurface,
    assistant_id: str,
    on_highlight: Optional[HighlightCallback] = None,
    on_message: Optional[MessageCallback] = None,
    bindings: Sequence[UIElementBinding] = ELEMENT_BINDINGS,
    duration_s: float = HIGHLIGHT_DURATION_S,
    timer_factory: TimerFactory = threading.Timer,
) -> VoiceGuide:
    """Build an unmounted guide that highlights controls on ``surface``.

    The host owns the lifecycle: call ``mount()`` once its page is shown and
    ``unmount()`` when it goes away.  ``on_highlight`` receives the active
    locator, or ``None`` once the highlight is cleared.
    """
    correlator = HighlightCorrelator(
        surface,
        bindings=bindings,
        duration_s=duration_s,
        timer_factory=timer_factory,
        on_highlight=on_highlight,
    )
    return VoiceGuide(client, assistant_id, correlator, on_message=on_message)
