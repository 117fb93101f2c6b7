"""Simple JSON-based config store."""

from __future__ import annotations

import json
from dataclasses import asdict, fields
from pathlib import Path

from models import MAX_CHUNK_MS, MIN_CHUNK_MS, StreamOptions

DEFAULT_HOTKEY = "Key.f9"
DEFAULT_CHUNK_MS = 100
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_APP_BASE_URL = "http://localhost:3000"


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "voice_session" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        return str(self._read_all().get("api_key", ""))

    def set_api_key(self, key: str) -> None:
        self._update(api_key=key)

    def get_token_url(self) -> str:
        return str(self._read_all().get("token_url", ""))

    def set_token_url(self, url: str) -> None:
        self._update(token_url=url)

    def get_hotkey(self) -> str:
        return str(self._read_all().get("hotkey", DEFAULT_HOTKEY))

    def set_hotkey(self, hotkey: str) -> None:
        self._update(hotkey=hotkey)

    def get_chunk_ms(self) -> int:
        """Audio chunk cadence, clamped to what the recorder accepts."""
        try:
            value = int(self._read_all().get("chunk_ms", DEFAULT_CHUNK_MS))
        except (TypeError, ValueError):
            return DEFAULT_CHUNK_MS
        return min(max(value, MIN_CHUNK_MS), MAX_CHUNK_MS)

    def get_log_level(self) -> str:
        return str(self._read_all().get("log_level", DEFAULT_LOG_LEVEL)).upper()

    def get_app_base_url(self) -> str:
        return str(self._read_all().get("app_base_url", DEFAULT_APP_BASE_URL)).rstrip("/")

    def get_stream_options(self) -> StreamOptions:
        stored = self._read_all().get("stream", {})
        if not isinstance(stored, dict):
            return StreamOptions()
        known = {f.name for f in fields(StreamOptions)}
        defaults = asdict(StreamOptions())
        values = {}
        for name, value in stored.items():
            if name in known and isinstance(value, type(defaults[name])):
                values[name] = value
        return StreamOptions(**values)

    def set_stream_options(self, options: StreamOptions) -> None:
        self._update(stream=asdict(options))

    def _update(self, **values: object) -> None:
        data = self._read_all()
        data.update(values)
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
