"""Route committed transcript updates to bound spoken commands.

Matching runs over the whole lowercased transcript in declared order, first
match wins. An action fires once per occurrence of its phrase: the router
remembers how many occurrences of every phrase it has already seen, and a
binding only matches when its count has grown since the previous update.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Sequence

from models import CommandBinding

logger = logging.getLogger(__name__)


class CommandRouter:
    def __init__(
        self,
        bindings: Sequence[CommandBinding],
        fallback: Optional[Callable[[], None]] = None,
    ) -> None:
        phrases = [binding.phrase for binding in bindings]
        if len(set(phrases)) != len(phrases):
            raise ValueError("trigger phrases must be unique")
        for phrase in phrases:
            if not phrase or phrase != phrase.lower():
                raise ValueError(f"trigger phrase must be non-empty lowercase: {phrase!r}")
        self._bindings = tuple(bindings)
        self._fallback = fallback
        self._seen: Dict[str, int] = {}
        self._last_transcript = ""

    def reset(self) -> None:
        self._seen = {}
        self._last_transcript = ""

    def handle_update(self, committed: str) -> Optional[CommandBinding]:
        """Invoke at most one action for this update and return the matched binding."""
        normalized = committed.lower()
        if not normalized.startswith(self._last_transcript):
            # Committed text only grows within a session, so this is a new one.
            self.reset()
        self._last_transcript = normalized

        counts = {binding.phrase: normalized.count(binding.phrase) for binding in self._bindings}
        matched = next(
            (b for b in self._bindings if counts[b.phrase] > self._seen.get(b.phrase, 0)),
            None,
        )
        self._seen = counts

        if matched is not None:
            logger.info("voice command matched: %s", matched.phrase)
            self._run(matched.action, matched.phrase)
        elif self._fallback is not None:
            self._run(self._fallback, "fallback")
        return matched

    @staticmethod
    def _run(action: Callable[[], None], label: str) -> None:
        try:
            action()
        except Exception:
            logger.exception("voice command action failed: %s", label)
