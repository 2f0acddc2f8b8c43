"""Re-entrancy-safe delivery scheduler shared by topics and channels.

All operations run synchronously on the caller's stack. An ``emit`` issued
while a drain is already running (from inside a callback, or inside
``batch``) only appends to the emit queue; the running drain picks it up.
Each queued value is delivered against its own snapshot of the registry, so
entries added during delivery wait for the next value and entries removed
during delivery are skipped for the current one.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from topicbus.errors import (
    InvalidCallback,
    MaxRecursiveEmitReached,
    MaxSubscriptionCountReached,
    MaxUnsubscribeAllLoopReached,
    SubscriptionDestroyed,
)
from topicbus.hooks import TransitionHooks
from topicbus.keys import DEFAULT, ChannelKey, channel_matches
from topicbus.options import SchedulerOptions, TopicOptions, coerce_scheduler_options
from topicbus.registry import Callback, OnUnsubscribe, Registry, SubscriptionEntry

logger = logging.getLogger("topicbus.scheduler")

Result = TypeVar("Result")


class _NoValue:
    def __repr__(self) -> str:
        return "NO_VALUE"


# payload of void emissions; callbacks are then called without arguments
NO_VALUE: Any = _NoValue()


@dataclass(frozen=True)
class EmitQueueItem:
    """A value waiting to be delivered."""

    value: Any
    topic: object
    channel: ChannelKey = DEFAULT


class RemoveHandle:
    """Idempotent capability removing one registry entry.

    Holds the entry id rather than the entry so that a resubscription, which
    keeps the id, keeps the handle valid.
    """

    __slots__ = ("_scheduler", "entry_id", "_active")

    def __init__(self, scheduler: Scheduler, entry_id: int) -> None:
        self._scheduler = scheduler
        self.entry_id = entry_id
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def __call__(self) -> None:
        if not self._active:
            return
        self._active = False
        self._scheduler._remove(self.entry_id)

    def __repr__(self) -> str:
        state = "active" if self._active else "removed"
        return f"RemoveHandle(entry_id={self.entry_id}, {state})"


class Scheduler:
    """Owns the registry and emit queue for one or more topics."""

    def __init__(
        self, options: SchedulerOptions | Mapping[str, Any] | None = None, **overrides: Any
    ) -> None:
        self.options = coerce_scheduler_options(options, **overrides)
        self._hooks = TransitionHooks(
            self.options.on_first_subscription, self.options.on_last_unsubscribe
        )
        self._registry = Registry()
        self._queue: deque[EmitQueueItem] = deque()
        self._pending: deque[int] = deque()
        self._draining = False
        self._destroyed = False

    @property
    def draining(self) -> bool:
        return self._draining

    def is_destroyed(self) -> bool:
        return self._destroyed

    def size(self, topic: object | None = None, *, channel: ChannelKey | None = None) -> int:
        """Count entries for ``topic`` (all entries when ``None``)."""
        return self._registry.count(topic, channel)

    # ── subscription management ─────────────────────────────────────────

    def subscribe(
        self,
        topic: object,
        options: TopicOptions | None,
        callback: Callback,
        sub_id: str | None = None,
        on_unsubscribe: OnUnsubscribe | None = None,
        *,
        channel: ChannelKey = DEFAULT,
    ) -> RemoveHandle:
        """Register ``callback`` and return its remove handle.

        An existing entry with the same key is updated and moved to the end
        of the registry; its original handle is returned.
        """
        if self._destroyed:
            raise SubscriptionDestroyed()
        if not callable(callback):
            raise InvalidCallback(callback)

        existing = self._registry.find(topic, sub_id, callback, channel)
        if existing is not None:
            # callback-keyed entries keep their callback, it is their identity
            if sub_id is not None:
                existing.callback = callback
            existing.on_unsubscribe = on_unsubscribe
            self._registry.move_to_end(existing.entry_id)
            logger.debug("Resubscribed entry %s", existing.entry_id)
            return existing.remove_handle

        options = options or TopicOptions()
        topic_hooks = TransitionHooks(options.on_first_subscription, options.on_last_unsubscribe)
        topic_before = self._registry.count(topic) if topic_hooks.on_first else 0

        entry_id = self._registry.next_id()
        entry = SubscriptionEntry(
            entry_id=entry_id,
            topic=topic,
            callback=callback,
            sub_id=sub_id,
            on_unsubscribe=on_unsubscribe,
            remove_handle=RemoveHandle(self, entry_id),
            channel=channel,
            topic_hooks=topic_hooks,
        )
        self._registry.add(entry)
        logger.debug("Subscribed entry %s (sub_id=%r, channel=%r)", entry_id, sub_id, channel)

        total = len(self._registry)
        self._hooks.added(total - 1, total)
        if topic_hooks.on_first:
            topic_hooks.added(topic_before, self._registry.count(topic))
        return entry.remove_handle

    def _remove(self, entry_id: int) -> None:
        entry = self._registry.get(entry_id)
        if entry is None:
            logger.warning(
                "Remove handle %s is active but its entry is not in the registry; "
                "ignoring the removal. Please report a bug.",
                entry_id,
            )
            return
        topic_hooks = entry.topic_hooks
        topic_before = self._registry.count(entry.topic) if topic_hooks.on_last else 0

        self._registry.pop(entry_id)
        if entry_id in self._pending:
            self._pending.remove(entry_id)
        logger.debug("Unsubscribed entry %s", entry_id)

        if entry.on_unsubscribe is not None:
            entry.on_unsubscribe()
        if topic_hooks.on_last:
            topic_hooks.removed(topic_before, self._registry.count(entry.topic))
        if len(self._registry) == 0:
            self._hooks.removed(1, 0)

    def unsubscribe(
        self,
        topic: object,
        sub_id: str | None = None,
        callback: Callback | None = None,
        *,
        channel: ChannelKey = DEFAULT,
    ) -> None:
        """Remove the matching entry if there is one."""
        entry = self._registry.find(topic, sub_id, callback, channel)
        if entry is not None:
            entry.remove_handle()

    def is_subscribed(
        self,
        topic: object,
        sub_id: str | None = None,
        callback: Callback | None = None,
        *,
        channel: ChannelKey = DEFAULT,
    ) -> bool:
        return self._registry.find(topic, sub_id, callback, channel) is not None

    def unsubscribe_all(
        self, topic: object | None = None, *, channel: ChannelKey | None = None
    ) -> None:
        """Remove every entry of ``topic`` (every entry when ``None``).

        ``on_unsubscribe`` hooks may subscribe new entries while this runs;
        they are removed too, as long as the churn settles within
        ``max_unsubscribe_all_loop`` extra removals.
        """
        limit = self.options.max_unsubscribe_all_loop
        budget = limit + len(self._registry)
        while True:
            entry = self._registry.first(topic, channel)
            if entry is None:
                return
            if budget <= 0:
                raise MaxUnsubscribeAllLoopReached(limit)
            budget -= 1
            entry.remove_handle()

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        logger.debug("Destroying scheduler with %d entries", len(self._registry))
        self.unsubscribe_all(None)
        if self.options.on_destroy is not None:
            self.options.on_destroy()

    # ── delivery ─────────────────────────────────────────────────────────

    def emit(self, topic: object, value: Any = NO_VALUE, *, channel: ChannelKey = DEFAULT) -> None:
        """Queue ``value`` for ``topic`` and drain unless a drain is running."""
        if self._destroyed:
            raise SubscriptionDestroyed()
        self._queue.append(EmitQueueItem(value, topic, channel))
        if self._draining:
            return
        self._draining = True
        self._drain()

    def batch(self, fn: Callable[[], Result]) -> Result:
        """Run ``fn`` with delivery deferred until it returns.

        Nested inside a running drain or another batch, ``fn`` is simply
        called and its emissions join the outer queue.
        """
        if self._draining:
            return fn()
        self._draining = True
        try:
            result = fn()
        except BaseException:
            self._queue.clear()
            self._draining = False
            raise
        self._drain()
        return result

    def _drain(self) -> None:
        limit = self.options.max_recursive_emit
        budget = limit
        try:
            while self._queue:
                if budget <= 0:
                    raise MaxRecursiveEmitReached(limit)
                budget -= 1
                self._deliver(self._queue.popleft())
        except BaseException:
            self._queue.clear()
            raise
        finally:
            self._pending.clear()
            self._draining = False

    def _deliver(self, item: EmitQueueItem) -> None:
        self._pending = deque(self._registry.snapshot())
        budget = self.options.max_subscription_count
        while self._pending:
            if budget <= 0:
                raise MaxSubscriptionCountReached()
            budget -= 1
            entry = self._registry.get(self._pending.popleft())
            if entry is None:
                continue
            if entry.topic is not item.topic or not channel_matches(entry.channel, item.channel):
                continue
            if item.value is NO_VALUE:
                entry.callback()
            else:
                entry.callback(item.value)


def create_scheduler(
    options: SchedulerOptions | Mapping[str, Any] | None = None, **overrides: Any
) -> Scheduler:
    """Build a scheduler from an options model, a mapping, or keyword arguments."""
    return Scheduler(options, **overrides)
