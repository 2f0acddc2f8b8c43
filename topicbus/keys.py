"""Channel keys: the broadcast default and user-supplied partitions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final


class _Default:
    """Broadcast channel; matches every other channel in both directions."""

    _instance: _Default | None = None

    def __new__(cls) -> _Default:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DEFAULT"

    def __reduce__(self) -> str:
        return "DEFAULT"


@dataclass(frozen=True)
class Keyed:
    """A named channel partition."""

    key: Any


ChannelKey = _Default | Keyed

DEFAULT: Final = _Default()


def as_channel_key(key: Any) -> ChannelKey:
    """Wrap a raw key; ``Keyed`` and ``DEFAULT`` pass through unchanged."""
    if isinstance(key, (_Default, Keyed)):
        return key
    return Keyed(key)


def channel_matches(subscribed: ChannelKey, emitted: ChannelKey) -> bool:
    """Deliver iff either side is the broadcast channel or both keys are equal."""
    return subscribed is DEFAULT or emitted is DEFAULT or subscribed == emitted
