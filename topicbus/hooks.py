"""Fires lifecycle callbacks on subscriber-count transitions."""

from __future__ import annotations

from dataclasses import dataclass

from topicbus.options import Hook


@dataclass(frozen=True)
class TransitionHooks:
    """Pair of callbacks watching a subscriber count cross zero."""

    on_first: Hook | None = None
    on_last: Hook | None = None

    def added(self, before: int, after: int) -> None:
        if self.on_first is not None and before == 0 and after == 1:
            self.on_first()

    def removed(self, before: int, after: int) -> None:
        if self.on_last is not None and before > 0 and after == 0:
            self.on_last()
