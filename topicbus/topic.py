"""Topic facades binding a topic identity to a scheduler."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from topicbus.keys import DEFAULT, ChannelKey, as_channel_key
from topicbus.options import SchedulerOptions, TopicOptions, coerce_topic_options
from topicbus.registry import OnUnsubscribe
from topicbus.scheduler import NO_VALUE, RemoveHandle, Scheduler, create_scheduler

if TYPE_CHECKING:
    from topicbus.channel import Channel, MultiSubscription, VoidChannel

logger = logging.getLogger("topicbus.topic")

T = TypeVar("T")
Result = TypeVar("Result")


class TopicIdentity:
    """Opaque discriminator shared by a topic and all of its channels."""

    __slots__ = ("name",)

    def __init__(self, name: str | None = None) -> None:
        self.name = name or f"topic_{id(self):x}"

    def __repr__(self) -> str:
        return f"TopicIdentity({self.name!r})"


class Topic(Generic[T]):
    """Topic-scoped view of a scheduler.

    ``destroy``, ``is_destroyed`` and ``batch`` act on the whole scheduler,
    so destroying a shared scheduler destroys every topic built on it.
    ``size`` and ``unsubscribe_all`` cover every channel of the topic.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        options: TopicOptions | Mapping[str, Any] | None = None,
        *,
        identity: TopicIdentity | None = None,
        channel: ChannelKey = DEFAULT,
    ) -> None:
        self.scheduler = scheduler
        self.options = coerce_topic_options(options)
        self.identity = identity or TopicIdentity()
        self._channel = channel

    @property
    def name(self) -> str:
        return self.identity.name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    def _scope(self) -> ChannelKey | None:
        return None

    def subscribe(
        self, callback: Callable[[T], Any], on_unsubscribe: OnUnsubscribe | None = None
    ) -> RemoveHandle:
        return self.scheduler.subscribe(
            self.identity, self.options, callback, None, on_unsubscribe, channel=self._channel
        )

    def subscribe_by_id(
        self,
        sub_id: str,
        callback: Callable[[T], Any],
        on_unsubscribe: OnUnsubscribe | None = None,
    ) -> RemoveHandle:
        return self.scheduler.subscribe(
            self.identity, self.options, callback, sub_id, on_unsubscribe, channel=self._channel
        )

    def unsubscribe(self, callback: Callable[[T], Any]) -> None:
        self.scheduler.unsubscribe(self.identity, None, callback, channel=self._channel)

    def unsubscribe_by_id(self, sub_id: str) -> None:
        self.scheduler.unsubscribe(self.identity, sub_id, channel=self._channel)

    def is_subscribed(self, callback: Callable[[T], Any]) -> bool:
        return self.scheduler.is_subscribed(self.identity, None, callback, channel=self._channel)

    def is_subscribed_by_id(self, sub_id: str) -> bool:
        return self.scheduler.is_subscribed(self.identity, sub_id, channel=self._channel)

    def unsubscribe_all(self) -> None:
        self.scheduler.unsubscribe_all(self.identity, channel=self._scope())

    def size(self) -> int:
        return self.scheduler.size(self.identity, channel=self._scope())

    def emit(self, value: T) -> None:
        self.scheduler.emit(self.identity, value, channel=self._channel)

    def batch(self, fn: Callable[[], Result]) -> Result:
        return self.scheduler.batch(fn)

    def destroy(self) -> None:
        self.scheduler.destroy()

    def is_destroyed(self) -> bool:
        return self.scheduler.is_destroyed()

    def channel(self, key: Any) -> Channel[T]:
        """Return a facade over the ``key`` partition of this topic."""
        from topicbus.channel import Channel

        return Channel(self, as_channel_key(key))

    def multi_subscription(self) -> MultiSubscription[T]:
        """Return a factory of fresh, mutually unlinked channels."""
        from topicbus.channel import MultiSubscription

        return MultiSubscription(self)


class VoidTopic(Topic[None]):
    """Topic whose emissions carry no payload; callbacks take no arguments."""

    def emit(self) -> None:  # type: ignore[override]
        self.scheduler.emit(self.identity, NO_VALUE, channel=self._channel)

    def channel(self, key: Any) -> VoidChannel:  # type: ignore[override]
        from topicbus.channel import VoidChannel

        return VoidChannel(self, as_channel_key(key))


def _resolve_scheduler(scheduler: Scheduler | SchedulerOptions | Mapping[str, Any] | None) -> Scheduler:
    if isinstance(scheduler, Scheduler):
        return scheduler
    return create_scheduler(scheduler)


def create_subscription(
    scheduler: Scheduler | SchedulerOptions | Mapping[str, Any] | None = None,
    options: TopicOptions | Mapping[str, Any] | None = None,
    *,
    name: str | None = None,
) -> Topic[Any]:
    """Create a topic on ``scheduler``, or on a private one built from options."""
    topic: Topic[Any] = Topic(
        _resolve_scheduler(scheduler), options, identity=TopicIdentity(name)
    )
    logger.debug("Created %r", topic)
    return topic


def create_void_subscription(
    scheduler: Scheduler | SchedulerOptions | Mapping[str, Any] | None = None,
    options: TopicOptions | Mapping[str, Any] | None = None,
    *,
    name: str | None = None,
) -> VoidTopic:
    topic = VoidTopic(_resolve_scheduler(scheduler), options, identity=TopicIdentity(name))
    logger.debug("Created %r", topic)
    return topic
