from __future__ import annotations

from models import RecognitionEvent, RecognitionKind, TranscriptState
from reconciler import reconcile


def _partial(text: str) -> RecognitionEvent:
    return RecognitionEvent(kind=RecognitionKind.PARTIAL.value, text=text)


def _final(text: str) -> RecognitionEvent:
    return RecognitionEvent(kind=RecognitionKind.FINAL.value, text=text)


def test_partial_then_final_scenario() -> None:
    state = TranscriptState()

    state, emissions = reconcile(state, _partial("creat"))
    assert state.preview == "creat"
    assert [(e.kind, e.text) for e in emissions] == [("preview", "creat")]

    state, _ = reconcile(state, _partial("create cour"))
    assert state.preview == "create cour"
    assert state.committed == ""

    state, emissions = reconcile(state, _final("create course"))
    assert state.committed == "create course"
    assert state.preview == ""
    assert [(e.kind, e.text) for e in emissions] == [
        ("preview", "create course"),
        ("transcript", "create course"),
    ]


def test_partial_preview_prefixes_committed_with_single_space() -> None:
    state = TranscriptState(committed="hello")
    state, emissions = reconcile(state, _partial("  world  "))

    assert state.preview == "hello world"
    assert state.committed == "hello"
    assert emissions[0].text == "hello world"


def test_finals_append_with_single_space() -> None:
    state = TranscriptState()
    state, _ = reconcile(state, _final("please"))
    state, _ = reconcile(state, _final(" create course now "))

    assert state.committed == "please create course now"


def test_blank_partial_is_ignored() -> None:
    state = TranscriptState(committed="a", preview="a b")
    new_state, emissions = reconcile(state, _partial("   "))

    assert new_state == state
    assert emissions == []


def test_empty_final_discards_preview_without_committing() -> None:
    state = TranscriptState(committed="hello", preview="hello wor")
    state, emissions = reconcile(state, _final(""))

    assert state.committed == "hello"
    assert state.preview == ""
    assert [(e.kind, e.text) for e in emissions] == [("preview", "hello")]


def test_empty_final_without_preview_is_ignored() -> None:
    state = TranscriptState(committed="hello")
    new_state, emissions = reconcile(state, _final("  "))

    assert new_state == state
    assert emissions == []


def test_committed_never_shrinks_or_changes_on_partials() -> None:
    events = [
        _partial("a"),
        _final("a b"),
        _partial("c"),
        _partial(""),
        _final(""),
        _partial("d e"),
        _final("d e f"),
        _partial("short"),
    ]
    state = TranscriptState()
    previous = ""
    for event in events:
        state, _ = reconcile(state, event)
        assert state.committed.startswith(previous)
        if event.kind == RecognitionKind.PARTIAL.value:
            assert state.committed == previous
        previous = state.committed

    assert state.committed == "a b d e f"


def test_non_text_events_do_not_change_state() -> None:
    state = TranscriptState(committed="x", preview="x y")
    for kind in (RecognitionKind.OPEN, RecognitionKind.ERROR, RecognitionKind.CLOSED):
        new_state, emissions = reconcile(state, RecognitionEvent(kind=kind.value, text="ignored"))
        assert new_state == state
        assert emissions == []
