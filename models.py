"""Core data models for the voice session."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Union

MIN_CHUNK_MS = 100
MAX_CHUNK_MS = 250


class SessionState(str, Enum):
    IDLE = "IDLE"
    ACQUIRING_CREDENTIAL = "ACQUIRING_CREDENTIAL"
    ACQUIRING_DEVICE = "ACQUIRING_DEVICE"
    CONNECTING = "CONNECTING"
    STREAMING = "STREAMING"
    STOPPING = "STOPPING"
    ERROR = "ERROR"


class RecognitionKind(str, Enum):
    OPEN = "open"
    PARTIAL = "partial"
    FINAL = "final"
    ERROR = "error"
    CLOSED = "closed"


class EmissionKind(str, Enum):
    PREVIEW = "preview"
    TRANSCRIPT = "transcript"


@dataclass
class AudioChunk:
    pcm16_bytes: bytes
    sample_rate: int = 16000
    channels: int = 1
    timestamp_ms: int = 0


@dataclass
class RecognitionEvent:
    kind: str
    text: str = ""
    code: str = ""
    message: str = ""
    retryable: bool = False


@dataclass(frozen=True)
class TranscriptState:
    committed: str = ""
    preview: str = ""


@dataclass(frozen=True)
class TranscriptEmission:
    kind: str
    text: str


@dataclass
class Session:
    state: SessionState = SessionState.IDLE
    transcript: TranscriptState = field(default_factory=TranscriptState)
    started_at: Optional[float] = None

    @property
    def committed_transcript(self) -> str:
        return self.transcript.committed

    @property
    def preview_text(self) -> str:
        return self.transcript.preview


@dataclass(frozen=True)
class DeviceConstraints:
    sample_rate: int = 16000
    channels: int = 1
    device: Optional[Union[int, str]] = None


@dataclass(frozen=True)
class StreamOptions:
    model: str = "paraformer-realtime-v2"
    language: str = "en"
    interim_results: bool = True
    punctuate: bool = True
    smart_format: bool = True
    sample_rate: int = 16000


@dataclass(frozen=True)
class CommandBinding:
    phrase: str
    action: Callable[[], None]


@dataclass(frozen=True)
class UIElementBinding:
    phrase: str
    locator: str


@dataclass
class AgentMessage:
    role: str
    text: str
