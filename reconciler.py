"""Merge partial and final recognition results into a committed transcript.

``reconcile`` is a pure function: it takes the current ``TranscriptState`` and
one ``RecognitionEvent`` and returns the next state together with the
emissions the consumer should see. ``preview`` emissions carry the live view
(committed text plus the in-progress partial); ``transcript`` emissions carry
the committed text and happen only when a final result is accepted.
"""

from __future__ import annotations

from typing import List, Tuple

from models import EmissionKind, RecognitionEvent, RecognitionKind, TranscriptEmission, TranscriptState


def join_text(committed: str, text: str) -> str:
    if not committed:
        return text
    return f"{committed} {text}"


def reconcile(
    state: TranscriptState,
    event: RecognitionEvent,
) -> Tuple[TranscriptState, List[TranscriptEmission]]:
    text = event.text.strip()

    if event.kind == RecognitionKind.PARTIAL.value:
        if not text:
            return state, []
        preview = join_text(state.committed, text)
        return (
            TranscriptState(committed=state.committed, preview=preview),
            [TranscriptEmission(EmissionKind.PREVIEW.value, preview)],
        )

    if event.kind == RecognitionKind.FINAL.value:
        if not text:
            if not state.preview:
                return state, []
            # Stale interim text must not linger as if it were final.
            return (
                TranscriptState(committed=state.committed),
                [TranscriptEmission(EmissionKind.PREVIEW.value, state.committed)],
            )
        committed = join_text(state.committed, text)
        return (
            TranscriptState(committed=committed),
            [
                TranscriptEmission(EmissionKind.PREVIEW.value, committed),
                TranscriptEmission(EmissionKind.TRANSCRIPT.value, committed),
            ],
        )

    return state, []
