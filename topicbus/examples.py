"""Runnable usage examples, exposed through ``topicbus examples run``."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from topicbus.scheduler import create_scheduler
from topicbus.topic import create_subscription, create_void_subscription

Echo = Callable[[str], None]


def simple(echo: Echo) -> None:
    """Subscribe, emit, then call the returned remove handle."""
    numbers = create_subscription(name="numbers")
    unsubscribe = numbers.subscribe(lambda num: echo(f"num: {num}"))
    numbers.emit(45)
    unsubscribe()
    numbers.emit(46)
    echo(f"subscribers left: {numbers.size()}")


def options(echo: Echo) -> None:
    """Lifecycle hooks fire when the subscriber count crosses zero."""
    numbers = create_subscription(
        {
            "on_first_subscription": lambda: echo("first subscription!"),
            "on_last_unsubscribe": lambda: echo("no subscriber left!"),
        }
    )
    unsubscribe = numbers.subscribe(lambda num: echo(f"num: {num}"))
    numbers.emit(45)
    unsubscribe()


def reference(echo: Echo) -> None:
    """Unsubscribe by passing the same callback back."""
    numbers = create_subscription()

    def on_num(num: int) -> None:
        echo(f"num: {num}")

    numbers.subscribe(on_num)
    numbers.emit(45)
    numbers.unsubscribe(on_num)
    echo(f"still subscribed: {numbers.is_subscribed(on_num)}")


def sub_id(echo: Echo) -> None:
    """A subscription id replaces the callback as identity."""
    numbers = create_subscription()
    numbers.subscribe_by_id("my-sub-id", lambda num: echo(f"first: {num}"))
    numbers.subscribe_by_id("my-sub-id", lambda num: echo(f"second: {num}"))
    numbers.emit(45)
    numbers.unsubscribe_by_id("my-sub-id")
    echo(f"subscribers left: {numbers.size()}")


def channels(echo: Echo) -> None:
    """The default channel listens to and reaches every other channel."""
    events = create_subscription(name="events")
    events.subscribe(lambda value: echo(f"default got {value}"))
    events.channel("k").subscribe(lambda value: echo(f"k got {value}"))
    events.channel("j").subscribe(lambda value: echo(f"j got {value}"))
    events.channel("k").emit("on k")
    events.emit("broadcast")


def batch(echo: Echo) -> None:
    """Emissions inside a batch are delivered after it returns, in order."""
    scheduler = create_scheduler()
    prices = create_subscription(scheduler, name="prices")
    ticks = create_void_subscription(scheduler, name="ticks")
    prices.subscribe(lambda price: echo(f"price: {price}"))
    ticks.subscribe(lambda: echo("tick"))

    def update() -> str:
        prices.emit(101.5)
        ticks.emit()
        echo("batch body done")
        return "ok"

    echo(f"batch returned {scheduler.batch(update)}")


@dataclass(frozen=True)
class Example:
    name: str
    run: Callable[[Echo], None]

    @property
    def description(self) -> str:
        return (self.run.__doc__ or "").strip()


EXAMPLES: dict[str, Example] = {
    example.name: example
    for example in (
        Example("simple", simple),
        Example("options", options),
        Example("reference", reference),
        Example("sub-id", sub_id),
        Example("channels", channels),
        Example("batch", batch),
    )
}
