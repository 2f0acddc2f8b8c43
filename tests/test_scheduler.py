"""Delivery scheduler behavior tests."""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import MagicMock

import pytest

from topicbus.errors import (
    ErrorKind,
    InvalidCallback,
    MaxRecursiveEmitReached,
    MaxSubscriptionCountReached,
    MaxUnsubscribeAllLoopReached,
    SubscriptionDestroyed,
)
from topicbus.options import TopicOptions
from topicbus.scheduler import Scheduler, create_scheduler
from topicbus.topic import create_subscription


def _recorder(log: list[tuple[str, Any]], name: str):
    def callback(value: Any) -> None:
        log.append((name, value))

    return callback


def test_delivers_in_subscription_order() -> None:
    topic = create_subscription()
    log: list[tuple[str, Any]] = []
    for name in ("a", "b", "c"):
        topic.subscribe(_recorder(log, name))

    topic.emit(1)

    assert log == [("a", 1), ("b", 1), ("c", 1)]


def test_resubscribe_moves_entry_to_end_and_keeps_handle() -> None:
    topic = create_subscription()
    log: list[tuple[str, Any]] = []
    cb_a = _recorder(log, "a")
    cb_b = _recorder(log, "b")
    first = topic.subscribe(cb_a)
    topic.subscribe(cb_b)
    second = topic.subscribe(cb_a)

    topic.emit(1)

    assert second is first
    assert topic.size() == 2
    assert log == [("b", 1), ("a", 1)]


def test_sub_id_replaces_callback() -> None:
    topic = create_subscription()
    cb1 = MagicMock()
    cb2 = MagicMock()
    handle1 = topic.subscribe_by_id("x", cb1)
    handle2 = topic.subscribe_by_id("x", cb2)

    topic.emit(7)

    assert handle1 is handle2
    assert topic.size() == 1
    assert topic.is_subscribed_by_id("x")
    cb1.assert_not_called()
    cb2.assert_called_once_with(7)


def test_same_callback_under_two_ids_is_two_entries() -> None:
    topic = create_subscription()
    cb = MagicMock()
    remove_x = topic.subscribe_by_id("x", cb)
    topic.subscribe_by_id("y", cb)

    remove_x()
    topic.emit(1)

    assert not topic.is_subscribed_by_id("x")
    assert topic.is_subscribed_by_id("y")
    cb.assert_called_once_with(1)


def test_subscriber_added_during_delivery_waits_for_next_value() -> None:
    topic = create_subscription()
    late = MagicMock()

    def adder(value: int) -> None:
        topic.subscribe(late)

    topic.subscribe(adder)
    topic.emit(1)
    late.assert_not_called()

    topic.emit(2)
    late.assert_called_once_with(2)


def test_subscriber_added_during_delivery_gets_value_queued_in_same_drain() -> None:
    topic = create_subscription()
    late = MagicMock()

    def adder(value: int) -> None:
        if value == 1:
            topic.subscribe(late)
            topic.emit(2)

    topic.subscribe(adder)
    topic.emit(1)

    late.assert_called_once_with(2)


def test_subscriber_removed_during_delivery_is_skipped() -> None:
    topic = create_subscription()
    victim = MagicMock()

    def remover(value: int) -> None:
        topic.unsubscribe(victim)

    topic.subscribe(remover)
    topic.subscribe(victim)
    topic.emit(1)

    victim.assert_not_called()
    assert topic.size() == 1


def test_resubscribe_by_id_replaces_on_unsubscribe_hook() -> None:
    topic = create_subscription()
    cb1, cb2 = MagicMock(), MagicMock()
    hook1, hook2 = MagicMock(), MagicMock()
    topic.subscribe_by_id("x", cb1, hook1)
    topic.subscribe_by_id("x", cb2, hook2)

    topic.unsubscribe_by_id("x")

    hook1.assert_not_called()
    hook2.assert_called_once_with()
    assert topic.size() == 0


def test_resubscribe_same_callback_keeps_callback_and_replaces_hook() -> None:
    topic = create_subscription()
    cb = MagicMock()
    hook1, hook2 = MagicMock(), MagicMock()
    topic.subscribe(cb, hook1)
    topic.subscribe(cb, hook2)

    topic.emit(3)
    topic.unsubscribe(cb)

    cb.assert_called_once_with(3)
    hook1.assert_not_called()
    hook2.assert_called_once_with()


def test_unsubscribe_all_inside_callback_stops_later_subscribers() -> None:
    topic = create_subscription()
    later_one, later_two = MagicMock(), MagicMock()
    calls: list[int] = []

    def clear(value: int) -> None:
        calls.append(value)
        topic.unsubscribe_all()

    topic.subscribe(clear)
    topic.subscribe(later_one)
    topic.subscribe(later_two)
    topic.emit(42)

    assert calls == [42]
    later_one.assert_not_called()
    later_two.assert_not_called()
    assert topic.size() == 0


def test_removing_already_called_entry_does_not_skip_the_rest() -> None:
    topic = create_subscription()
    log: list[tuple[str, Any]] = []
    cb_a = _recorder(log, "a")

    def remove_a(value: int) -> None:
        log.append(("b", value))
        topic.unsubscribe(cb_a)

    topic.subscribe(cb_a)
    topic.subscribe(remove_a)
    topic.subscribe(_recorder(log, "c"))
    topic.emit(1)

    assert log == [("a", 1), ("b", 1), ("c", 1)]
    assert not topic.is_subscribed(cb_a)


def test_unsubscribe_by_id_during_delivery_skips_pending_entry() -> None:
    topic = create_subscription()
    later = MagicMock()
    after = MagicMock()
    topic.subscribe(lambda value: topic.unsubscribe_by_id("later"))
    topic.subscribe_by_id("later", later)
    topic.subscribe(after)

    topic.emit(1)

    later.assert_not_called()
    after.assert_called_once_with(1)
    assert not topic.is_subscribed_by_id("later")


def test_remove_handle_is_idempotent() -> None:
    topic = create_subscription()
    on_unsubscribe = MagicMock()
    cb = MagicMock()
    remove = topic.subscribe(cb, on_unsubscribe)

    remove()
    remove()
    topic.unsubscribe(cb)
    topic.unsubscribe_by_id("missing")

    assert not remove.active
    assert topic.size() == 0
    on_unsubscribe.assert_called_once_with()


def test_reentrant_emit_is_fifo_not_recursive() -> None:
    topic = create_subscription()
    log: list[tuple[str, Any]] = []

    def first(value: int) -> None:
        log.append(("first", value))
        if value == 0:
            topic.emit(1)
            log.append(("first-after-emit", value))

    topic.subscribe(first)
    topic.subscribe(_recorder(log, "second"))
    topic.emit(0)

    assert log == [
        ("first", 0),
        ("first-after-emit", 0),
        ("second", 0),
        ("first", 1),
        ("second", 1),
    ]


def test_topic_lifecycle_hooks_fire_on_transitions_only() -> None:
    on_first = MagicMock()
    on_last = MagicMock()
    topic = create_subscription(
        create_scheduler(),
        TopicOptions(on_first_subscription=on_first, on_last_unsubscribe=on_last),
    )
    remove_a = topic.subscribe(MagicMock())
    remove_b = topic.subscribe(MagicMock())
    on_first.assert_called_once_with()

    remove_a()
    on_last.assert_not_called()
    remove_b()
    on_last.assert_called_once_with()

    topic.subscribe(MagicMock())
    assert on_first.call_count == 2


def test_scheduler_lifecycle_hooks_count_every_topic() -> None:
    on_first = MagicMock()
    on_last = MagicMock()
    scheduler = create_scheduler(on_first_subscription=on_first, on_last_unsubscribe=on_last)
    one = create_subscription(scheduler)
    two = create_subscription(scheduler)

    remove_one = one.subscribe(MagicMock())
    remove_two = two.subscribe(MagicMock())
    remove_one()
    on_last.assert_not_called()
    remove_two()

    on_first.assert_called_once_with()
    on_last.assert_called_once_with()


def test_hooks_fire_in_removal_order() -> None:
    calls: list[str] = []
    scheduler = create_scheduler(on_last_unsubscribe=lambda: calls.append("scheduler"))
    topic = create_subscription(scheduler, {"on_last_unsubscribe": lambda: calls.append("topic")})
    remove = topic.subscribe(MagicMock(), lambda: calls.append("entry"))

    remove()

    assert calls == ["entry", "topic", "scheduler"]


def test_recursive_emit_guard() -> None:
    topic = create_subscription({"max_recursive_emit": 10})

    def countdown(value: int) -> None:
        if value > 0:
            topic.emit(value - 1)

    topic.subscribe(countdown)
    topic.emit(9)

    with pytest.raises(MaxRecursiveEmitReached) as exc_info:
        topic.emit(10)
    assert exc_info.value.limit == 10
    assert exc_info.value.kind is ErrorKind.MAX_RECURSIVE_EMIT_REACHED


def test_unconditional_reemit_is_stopped() -> None:
    topic = create_subscription()
    topic.subscribe(lambda value: topic.emit(value + 1))

    with pytest.raises(MaxRecursiveEmitReached) as exc_info:
        topic.emit(0)
    assert exc_info.value.limit == 1000


def test_subscription_count_guard() -> None:
    topic = create_subscription({"max_subscription_count": 5})
    for _ in range(5):
        topic.subscribe(MagicMock())
    topic.emit(None)

    topic.subscribe(MagicMock())
    with pytest.raises(MaxSubscriptionCountReached):
        topic.emit(None)


def test_scheduler_usable_after_guard_failure() -> None:
    scheduler = create_scheduler(max_recursive_emit=5)
    topic = create_subscription(scheduler)
    state = {"loop": True}
    received: list[int] = []

    def callback(value: int) -> None:
        received.append(value)
        if state["loop"]:
            topic.emit(value + 1)

    topic.subscribe(callback)
    with pytest.raises(MaxRecursiveEmitReached):
        topic.emit(0)
    assert not scheduler.draining

    state["loop"] = False
    received.clear()
    topic.emit(100)
    assert received == [100]


def test_callback_error_propagates_and_resets_drain() -> None:
    scheduler = create_scheduler()
    topic = create_subscription(scheduler)
    after = MagicMock()

    def boom(value: int) -> None:
        topic.emit(value + 1)
        raise ValueError("boom")

    remove = topic.subscribe(boom)
    topic.subscribe(after)
    with pytest.raises(ValueError, match="boom"):
        topic.emit(1)
    assert not scheduler.draining

    remove()
    after.reset_mock()
    topic.emit(5)
    after.assert_called_once_with(5)


def test_invalid_callback_rejected() -> None:
    topic = create_subscription()

    with pytest.raises(InvalidCallback) as exc_info:
        topic.subscribe("not callable")  # type: ignore[arg-type]
    assert isinstance(exc_info.value, TypeError)
    assert exc_info.value.kind is ErrorKind.INVALID_CALLBACK
    assert topic.size() == 0


def test_destroy_semantics() -> None:
    on_destroy = MagicMock()
    on_unsubscribe = MagicMock()
    topic = create_subscription({"on_destroy": on_destroy})
    topic.subscribe(MagicMock(), on_unsubscribe)

    topic.destroy()
    topic.destroy()

    assert topic.is_destroyed()
    assert topic.size() == 0
    on_unsubscribe.assert_called_once_with()
    on_destroy.assert_called_once_with()
    with pytest.raises(SubscriptionDestroyed):
        topic.emit(1)
    with pytest.raises(SubscriptionDestroyed):
        topic.subscribe(MagicMock())


def test_batch_defers_and_keeps_values_apart() -> None:
    topic = create_subscription()
    log: list[tuple[str, Any]] = []
    topic.subscribe(_recorder(log, "a"))
    topic.subscribe(_recorder(log, "b"))

    def produce() -> str:
        topic.emit(1)
        topic.emit(2)
        assert log == []
        return "done"

    assert topic.batch(produce) == "done"
    assert log == [("a", 1), ("b", 1), ("a", 2), ("b", 2)]


def test_nested_batch_coalesces_into_outer() -> None:
    topic = create_subscription()
    cb = MagicMock()
    topic.subscribe(cb)

    def inner() -> int:
        topic.emit(2)
        return 2

    def outer() -> int:
        topic.emit(1)
        result = topic.batch(inner)
        cb.assert_not_called()
        return result

    assert topic.batch(outer) == 2
    assert [c.args for c in cb.call_args_list] == [(1,), (2,)]


def test_batch_error_discards_queued_values() -> None:
    scheduler = create_scheduler()
    topic = create_subscription(scheduler)
    cb = MagicMock()
    topic.subscribe(cb)

    def failing() -> None:
        topic.emit(1)
        raise RuntimeError("abort")

    with pytest.raises(RuntimeError, match="abort"):
        topic.batch(failing)
    assert not scheduler.draining

    topic.emit(2)
    cb.assert_called_once_with(2)


def test_unsubscribe_all_handles_terminating_cascade() -> None:
    topic = create_subscription()
    replacement = MagicMock()
    topic.subscribe(MagicMock(), lambda: topic.subscribe(replacement))
    topic.subscribe(MagicMock())

    topic.unsubscribe_all()

    assert topic.size() == 0


def test_unsubscribe_all_stops_hook_cycle() -> None:
    topic = create_subscription({"max_unsubscribe_all_loop": 20})
    cb_a, cb_b, cb_c = MagicMock(), MagicMock(), MagicMock()

    def hook_a() -> None:
        topic.subscribe(cb_b, hook_b)

    def hook_b() -> None:
        topic.subscribe(cb_c, hook_c)

    def hook_c() -> None:
        topic.subscribe(cb_a, hook_a)

    topic.subscribe(cb_a, hook_a)

    with pytest.raises(MaxUnsubscribeAllLoopReached) as exc_info:
        topic.unsubscribe_all()
    assert exc_info.value.limit == 20
    assert topic.size() == 1


def test_unsubscribe_all_is_scoped_to_topic() -> None:
    scheduler = create_scheduler()
    one = create_subscription(scheduler)
    two = create_subscription(scheduler)
    one.subscribe(MagicMock())
    two.subscribe(MagicMock())

    one.unsubscribe_all()

    assert one.size() == 0
    assert two.size() == 1
    assert scheduler.size() == 1


def test_missing_entry_is_reported_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    scheduler = Scheduler()
    topic = create_subscription(scheduler)
    remove = topic.subscribe(MagicMock())
    scheduler._registry.pop(remove.entry_id)

    with caplog.at_level(logging.WARNING, logger="topicbus.scheduler"):
        remove()

    assert "not in the registry" in caplog.text
    assert not remove.active
