"""Channel partitions of a topic.

A channel shares its parent topic's scheduler and identity and adds a key.
A value emitted on channel ``E`` reaches an entry subscribed on channel ``S``
when ``S`` is the default channel, ``E`` is the default channel, or
``S == E``.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from typing import Generic, TypeVar

from topicbus.keys import DEFAULT, ChannelKey
from topicbus.topic import Topic, VoidTopic

T = TypeVar("T")


class Channel(Topic[T]):
    """Topic facade bound to one channel key.

    ``size`` and ``unsubscribe_all`` only cover this exact channel.
    """

    def __init__(self, parent: Topic[T], key: ChannelKey = DEFAULT) -> None:
        super().__init__(
            parent.scheduler, parent.options, identity=parent.identity, channel=key
        )

    @property
    def key(self) -> ChannelKey:
        return self._channel

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {self._channel!r})"

    def _scope(self) -> ChannelKey | None:
        return self._channel


class VoidChannel(Channel[None], VoidTopic):
    """Channel of a void topic."""


class MultiSubscription(Generic[T]):
    """Hands out channels keyed by fresh unique ids so callers never collide."""

    def __init__(self, topic: Topic[T]) -> None:
        self._topic = topic
        self._channels: list[Channel[T]] = []

    def channel(self) -> Channel[T]:
        channel = self._topic.channel(uuid.uuid4().hex)
        self._channels.append(channel)
        return channel

    def __len__(self) -> int:
        return len(self._channels)

    def __iter__(self) -> Iterator[Channel[T]]:
        return iter(list(self._channels))

    def unsubscribe_all(self) -> None:
        """Remove every entry on every channel created here and forget those channels."""
        channels, self._channels = self._channels, []
        for channel in channels:
            channel.unsubscribe_all()
