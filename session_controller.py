"""State-machine based voice session orchestration.

Acquisition is sequential and fail-fast (credential, device, connection).
Each blocking step runs outside the lock; its continuation re-enters the lock
and checks that the session id it was started under is still current.  A
stale continuation releases whatever it acquired and stops there, so a late
credential or device handle can never resurrect a torn-down session.
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from dataclasses import replace
from typing import Callable, Optional

from errors import CONNECTION_ERROR, CREDENTIAL_ERROR, DEVICE_ERROR, STREAM_ERROR
from interfaces import AudioSource, CredentialProvider, Recorder, Stream, StreamClient
from models import (
    MAX_CHUNK_MS,
    MIN_CHUNK_MS,
    DeviceConstraints,
    EmissionKind,
    RecognitionEvent,
    RecognitionKind,
    Session,
    SessionState,
    StreamOptions,
)
from reconciler import reconcile

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]
TextCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str], None]


class SessionController:
    def __init__(
        self,
        credentials: CredentialProvider,
        recorder: Recorder,
        stream_client: StreamClient,
        stream_options: Optional[StreamOptions] = None,
        device_constraints: Optional[DeviceConstraints] = None,
        chunk_ms: int = 100,
        on_state_change: Optional[StateCallback] = None,
        on_transcript: Optional[TextCallback] = None,
        on_preview: Optional[TextCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._credentials = credentials
        self._recorder = recorder
        self._stream_client = stream_client
        self._stream_options = stream_options or StreamOptions()
        self._device_constraints = device_constraints or DeviceConstraints(
            sample_rate=self._stream_options.sample_rate
        )
        if not MIN_CHUNK_MS <= chunk_ms <= MAX_CHUNK_MS:
            raise ValueError(f"chunk_ms must be {MIN_CHUNK_MS}-{MAX_CHUNK_MS}, got {chunk_ms}")
        self._chunk_ms = chunk_ms
        self._on_state_change = on_state_change
        self._on_transcript = on_transcript
        self._on_preview = on_preview
        self._on_error = on_error

        self._lock = threading.RLock()
        self._session = Session()
        self._session_id = 0
        self._source: Optional[AudioSource] = None
        self._stream: Optional[Stream] = None
        self._open_pending = False

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def session(self) -> Session:
        with self._lock:
            return replace(self._session)

    def start_session(self) -> None:
        with self._lock:
            if self._session.state != SessionState.IDLE:
                self._stop_locked()
            self._session_id += 1
            session_id = self._session_id
            self._session = Session(started_at=time.time())
            self._transition(SessionState.ACQUIRING_CREDENTIAL)

        try:
            token = self._credentials.fetch_token()
        except Exception as exc:
            self._abort_start(session_id, CREDENTIAL_ERROR, str(exc))
            return

        with self._lock:
            if not self._is_current(session_id):
                return
            self._transition(SessionState.ACQUIRING_DEVICE)

        try:
            source = self._recorder.open(self._device_constraints)
        except Exception as exc:
            self._abort_start(session_id, DEVICE_ERROR, str(exc))
            return

        with self._lock:
            if not self._is_current(session_id):
                self._release("audio capture", source.stop)
                return
            self._source = source
            self._transition(SessionState.CONNECTING)

        try:
            stream = self._stream_client.connect(
                token,
                self._stream_options,
                functools.partial(self._handle_recognition_event, session_id),
            )
        except Exception as exc:
            self._abort_start(session_id, CONNECTION_ERROR, str(exc))
            return

        with self._lock:
            if not self._is_current(session_id):
                self._release("transcription stream", stream.close)
                return
            self._stream = stream
            if self._open_pending:
                self._open_pending = False
                self._begin_streaming()

    def stop_session(self) -> None:
        with self._lock:
            if self._session.state == SessionState.IDLE:
                return
            self._stop_locked()

    def _stop_locked(self) -> None:
        self._transition(SessionState.STOPPING)
        self._teardown()
        self._transition(SessionState.IDLE)

    def _begin_streaming(self) -> None:
        source, stream = self._source, self._stream
        if source is None or stream is None:
            return
        self._transition(SessionState.STREAMING)
        try:
            # Chunks go straight to the stream; the device callback never takes our lock.
            source.start_emitting(self._chunk_ms, stream.send)
        except Exception as exc:
            self._fail(DEVICE_ERROR, f"capture failed to start: {exc}")

    def _handle_recognition_event(self, session_id: int, event: RecognitionEvent) -> None:
        with self._lock:
            if not self._is_current(session_id):
                return
            kind = event.kind
            if kind == RecognitionKind.OPEN.value:
                if self._stream is None:
                    # connect() has not returned yet; finish once the stream is stored.
                    self._open_pending = True
                    return
                self._begin_streaming()
                return
            if kind in (RecognitionKind.PARTIAL.value, RecognitionKind.FINAL.value):
                self._apply_transcript_event(event)
                return
            streaming = self._session.state == SessionState.STREAMING
            if kind == RecognitionKind.ERROR.value:
                # Once streaming, every backend error is a runtime stop.
                if streaming:
                    code = STREAM_ERROR
                else:
                    code = event.code or CONNECTION_ERROR
                    if code == STREAM_ERROR:
                        code = CONNECTION_ERROR
                self._fail(code, event.message)
                return
            if kind == RecognitionKind.CLOSED.value:
                if streaming:
                    logger.info("recognition stream closed by backend")
                    self._stop_locked()
                else:
                    self._fail(CONNECTION_ERROR, "stream closed before opening")

    def _apply_transcript_event(self, event: RecognitionEvent) -> None:
        transcript, emissions = reconcile(self._session.transcript, event)
        self._session.transcript = transcript
        for emission in emissions:
            if emission.kind == EmissionKind.PREVIEW.value and self._on_preview:
                self._on_preview(emission.text)
            elif emission.kind == EmissionKind.TRANSCRIPT.value and self._on_transcript:
                self._on_transcript(emission.text)

    def _abort_start(self, session_id: int, code: str, message: str) -> None:
        with self._lock:
            if not self._is_current(session_id):
                logger.debug("discarding %s from superseded session: %s", code, message)
                return
            self._fail(code, message)

    def _fail(self, code: str, message: str) -> None:
        logger.warning("voice session failed (%s): %s", code, message)
        self._transition(SessionState.ERROR)
        self._emit_error(code, message)
        self._teardown()
        self._transition(SessionState.IDLE)

    def _teardown(self) -> None:
        # Invalidate pending continuations and late events before releasing.
        self._session_id += 1
        self._open_pending = False
        source, stream = self._source, self._stream
        self._source = None
        self._stream = None
        if source is not None:
            self._release("audio capture", source.stop)
        if stream is not None:
            self._release("transcription stream", stream.close)
        self._session = Session(state=self._session.state)

    def _is_current(self, session_id: int) -> bool:
        if session_id != self._session_id:
            logger.debug("ignoring continuation of superseded session %d", session_id)
            return False
        return True

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            self._on_error(code, message)

    @staticmethod
    def _release(label: str, release: Callable[[], None]) -> None:
        try:
            release()
        except Exception:
            logger.warning("failed to release %s", label, exc_info=True)

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._session.state
        if from_state == to_state:
            return
        self._session.state = to_state
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
