"""Microphone capture adapter."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

from errors import DeviceError
from models import MAX_CHUNK_MS, MIN_CHUNK_MS, AudioChunk, DeviceConstraints

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)

SAMPLE_WIDTH = 2  # int16


class SoundDeviceSource:
    """An opened microphone. Holds the device handle until ``stop()``."""

    def __init__(self, constraints: DeviceConstraints) -> None:
        self.sample_rate = constraints.sample_rate
        self.channels = constraints.channels
        self._lock = threading.Lock()
        self._running = False
        self._stopped = False
        self._on_chunk: Optional[Callable[[AudioChunk], None]] = None
        self._chunk_bytes = 0
        self._pending = bytearray()
        self._stream: Any = sd.InputStream(
            samplerate=constraints.sample_rate,
            channels=constraints.channels,
            dtype="int16",
            device=constraints.device,
            callback=self._on_audio,
        )

    def start_emitting(self, interval_ms: int, on_chunk: Callable[[AudioChunk], None]) -> None:
        if not MIN_CHUNK_MS <= interval_ms <= MAX_CHUNK_MS:
            raise ValueError(
                f"chunk interval must be {MIN_CHUNK_MS}-{MAX_CHUNK_MS} ms, got {interval_ms}"
            )
        with self._lock:
            if self._running:
                return
            if self._stopped:
                raise DeviceError("audio source already released")
            self._on_chunk = on_chunk
            self._chunk_bytes = int(self.sample_rate * interval_ms / 1000) * self.channels * SAMPLE_WIDTH
            self._pending = bytearray()
            self._stream.start()
            self._running = True

    def stop(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._running = False
            stream = self._stream
            self._stream = None
        try:
            stream.stop()
        except Exception:
            logger.warning("failed to stop input stream", exc_info=True)
        try:
            stream.close()
        except Exception:
            logger.warning("failed to close input device", exc_info=True)

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if status:
            logger.debug("input status: %s", status)
        on_chunk = self._on_chunk
        if not self._running or on_chunk is None or np is None:
            return
        self._pending.extend(np.asarray(indata, dtype=np.int16).tobytes())
        while len(self._pending) >= self._chunk_bytes:
            payload = bytes(self._pending[: self._chunk_bytes])
            del self._pending[: self._chunk_bytes]
            on_chunk(
                AudioChunk(
                    pcm16_bytes=payload,
                    sample_rate=self.sample_rate,
                    channels=self.channels,
                    timestamp_ms=int(time.time() * 1000),
                )
            )


class SoundDeviceRecorder:
    def open(self, constraints: DeviceConstraints) -> SoundDeviceSource:
        if sd is None:
            raise DeviceError("sounddevice is not installed")
        try:
            return SoundDeviceSource(constraints)
        except Exception as exc:
            raise DeviceError(f"could not open microphone: {exc}") from exc
