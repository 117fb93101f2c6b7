"""Protocol interfaces used by SessionController and VoiceGuide."""

from __future__ import annotations

from typing import Any, Callable, Protocol

from models import AudioChunk, DeviceConstraints, RecognitionEvent, StreamOptions


class CredentialProvider(Protocol):
    def fetch_token(self) -> str: ...


class AudioSource(Protocol):
    def start_emitting(self, interval_ms: int, on_chunk: Callable[[AudioChunk], None]) -> None: ...

    def stop(self) -> None: ...


class Recorder(Protocol):
    def open(self, constraints: DeviceConstraints) -> AudioSource: ...


class Stream(Protocol):
    def send(self, chunk: AudioChunk) -> None: ...

    def close(self) -> None: ...


class StreamClient(Protocol):
    def connect(
        self,
        token: str,
        options: StreamOptions,
        on_event: Callable[[RecognitionEvent], None],
    ) -> Stream: ...


class HighlightSurface(Protocol):
    """Page abstraction the correlator drives; ``locate`` raises ElementNotFound."""

    def locate(self, locator: str) -> Any: ...

    def apply_highlight(self, element: Any) -> None: ...

    def remove_highlight(self, element: Any) -> None: ...

    def scroll_into_view(self, element: Any) -> None: ...


class AgentClient(Protocol):
    def on(self, event: str, handler: Callable[..., None]) -> None: ...

    def start(self, assistant_id: str) -> None: ...

    def stop(self) -> None: ...
