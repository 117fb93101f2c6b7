"""Tests for SoundDeviceRecorder / SoundDeviceSource."""

from __future__ import annotations

from typing import List
from unittest.mock import MagicMock, patch

import pytest

from errors import DeviceError
from models import AudioChunk, DeviceConstraints
from recorder import SoundDeviceRecorder


# ---------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------

class _FakeNp:
    """Minimal numpy stand-in so the audio callback doesn't bail."""

    class int16:
        pass

    @staticmethod
    def asarray(data, dtype=None):
        return data


class _FakeAudioInput:
    """Fake audio block similar to what the sounddevice callback provides."""

    def __init__(self, n_samples: int) -> None:
        self._data = b"\x01\x00" * n_samples

    def tobytes(self) -> bytes:
        return self._data


def _open(mock_sd: MagicMock, **kwargs):  # noqa: ANN003, ANN202
    mock_sd.InputStream.return_value = MagicMock()
    return SoundDeviceRecorder().open(DeviceConstraints(**kwargs))


# ---------------------------------------------------------------
# Device acquisition
# ---------------------------------------------------------------

@patch("recorder.sd")
def test_open_acquires_device_without_starting(mock_sd: MagicMock) -> None:
    source = _open(mock_sd, sample_rate=16000, channels=1, device="USB Mic")

    kwargs = mock_sd.InputStream.call_args.kwargs
    assert kwargs["samplerate"] == 16000
    assert kwargs["channels"] == 1
    assert kwargs["dtype"] == "int16"
    assert kwargs["device"] == "USB Mic"
    mock_sd.InputStream.return_value.start.assert_not_called()
    source.stop()


@patch("recorder.sd")
def test_permission_denied_raises_device_error(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.side_effect = RuntimeError("Error querying device -1")

    with pytest.raises(DeviceError, match="could not open microphone"):
        SoundDeviceRecorder().open(DeviceConstraints())


def test_open_raises_without_sounddevice(monkeypatch) -> None:  # noqa: ANN001
    import recorder as rec_mod
    monkeypatch.setattr(rec_mod, "sd", None)

    with pytest.raises(DeviceError, match="sounddevice is not installed"):
        SoundDeviceRecorder().open(DeviceConstraints())


# ---------------------------------------------------------------
# Emitting / stopping
# ---------------------------------------------------------------

@patch("recorder.sd")
def test_start_emitting_starts_stream_once(mock_sd: MagicMock) -> None:
    source = _open(mock_sd)
    stream = mock_sd.InputStream.return_value

    source.start_emitting(100, lambda chunk: None)
    source.start_emitting(100, lambda chunk: None)

    stream.start.assert_called_once()
    source.stop()


@patch("recorder.sd")
def test_interval_outside_range_is_rejected(mock_sd: MagicMock) -> None:
    source = _open(mock_sd)

    with pytest.raises(ValueError):
        source.start_emitting(20, lambda chunk: None)
    with pytest.raises(ValueError):
        source.start_emitting(500, lambda chunk: None)
    source.stop()


@patch("recorder.sd")
def test_stop_releases_device_and_is_idempotent(mock_sd: MagicMock) -> None:
    source = _open(mock_sd)
    stream = mock_sd.InputStream.return_value
    source.start_emitting(100, lambda chunk: None)

    source.stop()
    source.stop()

    stream.stop.assert_called_once()
    stream.close.assert_called_once()


@patch("recorder.sd")
def test_stop_on_never_started_source_closes_device(mock_sd: MagicMock) -> None:
    source = _open(mock_sd)
    source.stop()

    mock_sd.InputStream.return_value.close.assert_called_once()


@patch("recorder.sd")
def test_close_runs_even_when_stop_fails(mock_sd: MagicMock) -> None:
    source = _open(mock_sd)
    stream = mock_sd.InputStream.return_value
    stream.stop.side_effect = RuntimeError("stream stalled")

    source.stop()  # should not raise

    stream.close.assert_called_once()


@patch("recorder.sd")
def test_start_after_stop_raises(mock_sd: MagicMock) -> None:
    source = _open(mock_sd)
    source.stop()

    with pytest.raises(DeviceError):
        source.start_emitting(100, lambda chunk: None)


# ---------------------------------------------------------------
# Fixed cadence chunking
# ---------------------------------------------------------------

@patch("recorder.np", _FakeNp())
@patch("recorder.sd")
def test_callback_rechunks_to_fixed_interval(mock_sd: MagicMock) -> None:
    source = _open(mock_sd, sample_rate=16000, channels=1)
    chunks: List[AudioChunk] = []
    source.start_emitting(100, chunks.append)  # 1600 samples per chunk

    source._on_audio(_FakeAudioInput(1000), frames=1000, time_info=None, status=None)
    assert chunks == []

    source._on_audio(_FakeAudioInput(1000), frames=1000, time_info=None, status=None)
    assert len(chunks) == 1
    assert len(chunks[0].pcm16_bytes) == 1600 * 2
    assert chunks[0].sample_rate == 16000
    assert chunks[0].channels == 1

    source._on_audio(_FakeAudioInput(2200), frames=2200, time_info=None, status=None)
    assert len(chunks) == 2
    source.stop()


@patch("recorder.np", _FakeNp())
@patch("recorder.sd")
def test_callback_after_stop_is_noop(mock_sd: MagicMock) -> None:
    source = _open(mock_sd)
    chunks: List[AudioChunk] = []
    source.start_emitting(100, chunks.append)
    source.stop()

    source._on_audio(_FakeAudioInput(3200), frames=3200, time_info=None, status=None)

    assert chunks == []
