"""Streaming recognizer adapter using DashScope realtime recognition.

``DashscopeStreamClient.connect`` opens a ``dashscope.audio.asr.Recognition``
session and returns a ``DashscopeStream``.  SDK callbacks run on the SDK's
websocket thread and only enqueue ``RecognitionEvent`` objects; a dispatcher
thread hands them to the session handler in arrival order, so the handler is
free to close the stream without blocking the SDK.
"""

from __future__ import annotations

import logging
import threading
from queue import Queue
from typing import Any, Callable, Optional

try:
    import dashscope
    from dashscope.audio.asr import Recognition, RecognitionCallback, RecognitionResult
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore
    Recognition = None  # type: ignore
    RecognitionCallback = object  # type: ignore
    RecognitionResult = None  # type: ignore

from errors import CONNECTION_ERROR, CREDENTIAL_ERROR, STREAM_ERROR, StreamConnectionError
from models import AudioChunk, RecognitionEvent, RecognitionKind, StreamOptions

logger = logging.getLogger(__name__)

EventHandler = Callable[[RecognitionEvent], None]


def to_error_event(message: str) -> RecognitionEvent:
    """Map an SDK/network error message to a standard error event."""
    low = message.lower()
    if "401" in low or "auth" in low or "api key" in low or "apikey" in low:
        code = CREDENTIAL_ERROR
        retryable = False
    elif "timeout" in low or "network" in low or "connection" in low:
        code = CONNECTION_ERROR
        retryable = True
    else:
        code = STREAM_ERROR
        retryable = True
    return RecognitionEvent(
        kind=RecognitionKind.ERROR.value,
        code=code,
        message=message,
        retryable=retryable,
    )


class _QueueingCallback(RecognitionCallback):
    def __init__(self, events: Queue[Optional[RecognitionEvent]], interim_results: bool) -> None:
        super().__init__()
        self._events = events
        self._interim_results = interim_results

    def on_open(self) -> None:
        self._events.put(RecognitionEvent(kind=RecognitionKind.OPEN.value))

    def on_event(self, result: RecognitionResult) -> None:
        sentence = result.get_sentence()
        if not isinstance(sentence, dict) or "text" not in sentence:
            return
        text = str(sentence.get("text") or "")
        if RecognitionResult.is_sentence_end(sentence):
            self._events.put(RecognitionEvent(kind=RecognitionKind.FINAL.value, text=text))
        elif self._interim_results:
            self._events.put(RecognitionEvent(kind=RecognitionKind.PARTIAL.value, text=text))

    def on_error(self, result: RecognitionResult) -> None:
        message = str(getattr(result, "message", "") or result)
        self._events.put(to_error_event(message))

    def on_close(self) -> None:
        self._events.put(RecognitionEvent(kind=RecognitionKind.CLOSED.value))


class DashscopeStream:
    def __init__(self, recognition: Any, events: Queue[Optional[RecognitionEvent]], on_event: EventHandler) -> None:
        self._recognition = recognition
        self._events = events
        self._on_event = on_event
        self._lock = threading.Lock()
        self._open = False
        self._closed = False
        self._thread = threading.Thread(target=self._dispatch, name="recognition-events", daemon=True)
        self._thread.start()

    @property
    def is_open(self) -> bool:
        return self._open and not self._closed

    def send(self, chunk: AudioChunk) -> None:
        if not self.is_open or not chunk.pcm16_bytes:
            return
        try:
            self._recognition.send_audio_frame(chunk.pcm16_bytes)
        except Exception:
            logger.debug("dropped audio chunk", exc_info=True)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        try:
            self._recognition.stop()
        finally:
            self._events.put(None)
            if threading.current_thread() is not self._thread:
                self._thread.join(timeout=0.5)

    def _dispatch(self) -> None:
        while True:
            event = self._events.get()
            if event is None:  # Sentinel
                return
            if event.kind == RecognitionKind.OPEN.value:
                self._open = True
            elif event.kind == RecognitionKind.CLOSED.value:
                self._open = False
            try:
                self._on_event(event)
            except Exception:
                logger.exception("recognition event handler failed for %s", event.kind)


class DashscopeStreamClient:
    def __init__(self, audio_format: str = "pcm") -> None:
        self._audio_format = audio_format

    def connect(self, token: str, options: StreamOptions, on_event: EventHandler) -> DashscopeStream:
        if not token or not token.strip():
            raise StreamConnectionError("malformed access token")
        if dashscope is None:
            raise StreamConnectionError("dashscope is not installed")

        dashscope.api_key = token.strip()
        events: Queue[Optional[RecognitionEvent]] = Queue()
        try:
            recognition = Recognition(
                model=options.model,
                callback=_QueueingCallback(events, options.interim_results),
                format=self._audio_format,
                sample_rate=options.sample_rate,
                language_hints=[options.language],
                punctuation_prediction_enabled=options.punctuate,
                inverse_text_normalization_enabled=options.smart_format,
            )
            recognition.start()
        except Exception as exc:
            raise StreamConnectionError(f"could not open recognition stream: {exc}") from exc
        logger.info("recognition stream started (model=%s, language=%s)", options.model, options.language)
        return DashscopeStream(recognition, events, on_event)
