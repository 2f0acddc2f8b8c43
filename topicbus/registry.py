"""Ordered store of subscription entries owned by a scheduler."""

from __future__ import annotations

import itertools
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from topicbus.hooks import TransitionHooks
from topicbus.keys import DEFAULT, ChannelKey

if TYPE_CHECKING:
    from topicbus.scheduler import RemoveHandle

Callback = Callable[..., Any]
OnUnsubscribe = Callable[[], None]


@dataclass
class SubscriptionEntry:
    """One registered callback."""

    entry_id: int
    topic: object
    callback: Callback
    sub_id: str | None
    on_unsubscribe: OnUnsubscribe | None
    remove_handle: RemoveHandle
    channel: ChannelKey = DEFAULT
    topic_hooks: TransitionHooks = field(default_factory=TransitionHooks)

    def same_key(
        self,
        topic: object,
        sub_id: str | None,
        callback: Callback | None,
        channel: ChannelKey,
    ) -> bool:
        if self.topic is not topic or self.channel != channel:
            return False
        if sub_id is None:
            return self.sub_id is None and self.callback == callback
        return self.sub_id == sub_id


class Registry:
    """Insertion-ordered mapping of entry id to entry.

    Order is delivery order. Re-subscribing an existing key moves its entry to
    the end instead of adding a second one.
    """

    def __init__(self) -> None:
        self._entries: OrderedDict[int, SubscriptionEntry] = OrderedDict()
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._entries)

    def next_id(self) -> int:
        return next(self._ids)

    def add(self, entry: SubscriptionEntry) -> None:
        self._entries[entry.entry_id] = entry

    def get(self, entry_id: int) -> SubscriptionEntry | None:
        return self._entries.get(entry_id)

    def pop(self, entry_id: int) -> SubscriptionEntry | None:
        return self._entries.pop(entry_id, None)

    def move_to_end(self, entry_id: int) -> None:
        self._entries.move_to_end(entry_id)

    def find(
        self,
        topic: object,
        sub_id: str | None,
        callback: Callback | None = None,
        channel: ChannelKey = DEFAULT,
    ) -> SubscriptionEntry | None:
        """Return the entry registered under ``(topic, channel, sub_id or callback)``."""
        for entry in self._entries.values():
            if entry.same_key(topic, sub_id, callback, channel):
                return entry
        return None

    def first(
        self, topic: object | None = None, channel: ChannelKey | None = None
    ) -> SubscriptionEntry | None:
        for entry in self._entries.values():
            if _in_scope(entry, topic, channel):
                return entry
        return None

    def count(self, topic: object | None = None, channel: ChannelKey | None = None) -> int:
        """Count entries, optionally restricted to a topic and an exact channel."""
        if topic is None and channel is None:
            return len(self._entries)
        return sum(1 for entry in self._entries.values() if _in_scope(entry, topic, channel))

    def snapshot(self) -> list[int]:
        """Entry ids in current delivery order."""
        return list(self._entries)


def _in_scope(entry: SubscriptionEntry, topic: object | None, channel: ChannelKey | None) -> bool:
    if topic is not None and entry.topic is not topic:
        return False
    return channel is None or entry.channel == channel
