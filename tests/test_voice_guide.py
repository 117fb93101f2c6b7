from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from errors import ElementNotFound
from models import AgentMessage
from voice_guide import VoiceGuide, create_voice_guide


class FakeAgentClient:
    def __init__(self) -> None:
        self.handlers: Dict[str, List[Callable[..., None]]] = {}
        self.started_with: Optional[str] = None
        self.stop_calls = 0

    def on(self, event: str, handler: Callable[..., None]) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def start(self, assistant_id: str) -> None:
        self.started_with = assistant_id

    def stop(self) -> None:
        self.stop_calls += 1

    def emit(self, event: str, *args: Any) -> None:
        for handler in self.handlers.get(event, []):
            handler(*args)


def _guide(on_message=None):  # noqa: ANN001, ANN202
    client = FakeAgentClient()
    correlator = MagicMock()
    correlator.current = None
    guide = VoiceGuide(client, "assistant-1", correlator, on_message=on_message)
    return guide, client, correlator


def _transcript(role: str, text: str, **extra: Any) -> Dict[str, Any]:
    return {"type": "transcript", "role": role, "transcript": text, **extra}


def test_mount_registers_handlers_once() -> None:
    guide, client, _ = _guide()
    guide.mount()
    guide.mount()
    guide.unmount()
    guide.mount()

    assert all(len(handlers) == 1 for handlers in client.handlers.values())
    assert set(client.handlers) == {
        "call-start", "call-end", "speech-start", "speech-end", "message", "error",
    }


def test_start_call_requires_mount() -> None:
    guide, client, _ = _guide()
    with pytest.raises(RuntimeError):
        guide.start_call()

    guide.mount()
    guide.start_call()
    assert client.started_with == "assistant-1"


def test_call_lifecycle_flags() -> None:
    guide, client, correlator = _guide()
    guide.mount()

    client.emit("call-start")
    client.emit("speech-start")
    assert guide.is_connected and guide.is_speaking

    client.emit("speech-end")
    assert not guide.is_speaking

    client.emit("call-end")
    assert not guide.is_connected
    correlator.clear.assert_called_once()


def test_assistant_transcripts_feed_correlator() -> None:
    messages: List[AgentMessage] = []
    guide, client, correlator = _guide(on_message=messages.append)
    guide.mount()

    client.emit("message", _transcript("user", "how do I get to the dashboard"))
    client.emit("message", _transcript("assistant", "Let's open the dashboard now"))
    client.emit("message", _transcript("assistant", "Click", transcriptType="partial"))
    client.emit("message", {"type": "status-update", "status": "ended"})

    correlator.handle_utterance.assert_called_once_with("Let's open the dashboard now")
    assert guide.transcript == [
        AgentMessage("user", "how do I get to the dashboard"),
        AgentMessage("assistant", "Let's open the dashboard now"),
    ]
    assert messages == guide.transcript


def test_unmount_clears_highlight_and_stops_agent() -> None:
    guide, client, correlator = _guide()
    guide.mount()
    client.emit("call-start")

    guide.unmount()
    guide.unmount()

    correlator.clear.assert_called_once()
    assert client.stop_calls == 1
    assert not guide.is_connected

    # Messages arriving after unmount do not highlight.
    client.emit("message", _transcript("assistant", "open the dashboard"))
    correlator.handle_utterance.assert_not_called()


def test_end_call_clears_highlight_first() -> None:
    guide, client, correlator = _guide()
    guide.mount()
    guide.end_call()

    correlator.clear.assert_called_once()
    assert client.stop_calls == 1


def test_agent_stop_failure_on_unmount_is_contained() -> None:
    guide, client, _ = _guide()
    client.stop = MagicMock(side_effect=RuntimeError("already stopped"))
    guide.mount()
    guide.unmount()  # should not raise


class _PageSurface:
    def __init__(self, locators: List[str]) -> None:
        self.locators = set(locators)
        self.highlighted: List[str] = []

    def locate(self, locator: str) -> str:
        if locator not in self.locators:
            raise ElementNotFound(locator)
        return locator

    def apply_highlight(self, element: str) -> None:
        self.highlighted.append(element)

    def remove_highlight(self, element: str) -> None:
        self.highlighted.remove(element)

    def scroll_into_view(self, element: str) -> None:
        pass


class _ManualTimer:
    def __init__(self, interval: float, function, args=()) -> None:  # noqa: ANN001
        self.function = function
        self.args = args
        self.daemon = False

    def start(self) -> None:
        pass

    def cancel(self) -> None:
        pass


def test_created_guide_highlights_from_assistant_speech() -> None:
    client = FakeAgentClient()
    surface = _PageSurface(["#dashboard-link", "#enroll-btn"])
    highlights: List[Optional[str]] = []
    guide = create_voice_guide(
        client, surface, "assistant-1",
        on_highlight=highlights.append, timer_factory=_ManualTimer,
    )
    guide.mount()
    guide.start_call()
    client.emit("call-start")

    client.emit("message", _transcript("assistant", "Click the dashboard link"))
    assert guide.current_highlight == "#dashboard-link"
    assert surface.highlighted == ["#dashboard-link"]

    client.emit("message", _transcript("assistant", "Now press enroll"))
    assert surface.highlighted == ["#enroll-btn"]

    client.emit("call-end")
    assert surface.highlighted == []
    assert guide.current_highlight is None
    assert highlights == ["#dashboard-link", "#enroll-btn", None]
    assert client.started_with == "assistant-1"
