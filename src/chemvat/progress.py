"""Fractional reaction progress carried between ticks."""

from __future__ import annotations

import math
from typing import Iterable, Mapping, Protocol


class _Identified(Protocol):
    id: str


class ProgressStore:
    """Per-rule leftover of the fractional reaction rate.

    Entries are created lazily and removed as soon as progress drops to
    zero, so an empty store means no rule has pending progress.
    """

    def __init__(self) -> None:
        self._progress: dict[str, float] = {}

    def get_progress(self, rule: _Identified) -> float:
        return self._progress.get(rule.id, 0.0)

    def set_progress(self, rule: _Identified, progress: float) -> None:
        if progress <= 0:
            self._progress.pop(rule.id, None)
            return
        self._progress[rule.id] = progress

    def advance(self, rule: _Identified, delta: float) -> int:
        """Add ``delta`` and return the whole units that became available."""
        value = self.get_progress(rule) + delta
        if value <= 0:
            self.set_progress(rule, 0.0)
            return 0
        successes = math.floor(value)
        self.set_progress(rule, value - successes)
        return successes

    def filter(self, rules: Iterable[_Identified]) -> None:
        """Drop progress of rules that are no longer applicable."""
        keep = {rule.id for rule in rules}
        for stale in [rule_id for rule_id in self._progress if rule_id not in keep]:
            del self._progress[stale]

    def __len__(self) -> int:
        return len(self._progress)

    def __contains__(self, rule: object) -> bool:
        return getattr(rule, "id", None) in self._progress

    def to_dict(self) -> dict[str, float]:
        return dict(self._progress)

    @classmethod
    def from_dict(cls, data: Mapping[str, float]) -> ProgressStore:
        store = cls()
        for rule_id, value in data.items():
            if value > 0:
                store._progress[rule_id] = float(value)
        return store
