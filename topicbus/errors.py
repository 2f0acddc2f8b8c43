"""Error types raised by the scheduler and its topics."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Tag identifying which failure a ``PubSubError`` represents."""

    SUBSCRIPTION_DESTROYED = "SubscriptionDestroyed"
    INVALID_CALLBACK = "InvalidCallback"
    MAX_SUBSCRIPTION_COUNT_REACHED = "MaxSubscriptionCountReached"
    MAX_RECURSIVE_EMIT_REACHED = "MaxRecursiveEmitReached"
    MAX_UNSUBSCRIBE_ALL_LOOP_REACHED = "MaxUnsubscribeAllLoopReached"


class PubSubError(RuntimeError):
    """Base class for every failure raised by ``topicbus``."""

    kind: ErrorKind


class SubscriptionDestroyed(PubSubError):
    kind = ErrorKind.SUBSCRIPTION_DESTROYED

    def __init__(self) -> None:
        super().__init__("The subscription has been destroyed")


class InvalidCallback(PubSubError, TypeError):
    kind = ErrorKind.INVALID_CALLBACK

    def __init__(self, callback: object = None) -> None:
        super().__init__(f"The callback is not callable: {callback!r}")
        self.callback = callback


class MaxSubscriptionCountReached(PubSubError):
    kind = ErrorKind.MAX_SUBSCRIPTION_COUNT_REACHED

    def __init__(self) -> None:
        super().__init__(
            "The max_subscription_count has been reached. If this is expected "
            "you can use the max_subscription_count option to raise the limit"
        )


class MaxRecursiveEmitReached(PubSubError):
    kind = ErrorKind.MAX_RECURSIVE_EMIT_REACHED

    def __init__(self, limit: int) -> None:
        super().__init__(
            f"The max_recursive_emit limit ({limit}) has been reached, did you emit() "
            "in a callback? If this is expected you can use the max_recursive_emit "
            "option to raise the limit"
        )
        self.limit = limit


class MaxUnsubscribeAllLoopReached(PubSubError):
    kind = ErrorKind.MAX_UNSUBSCRIBE_ALL_LOOP_REACHED

    def __init__(self, limit: int) -> None:
        super().__init__(
            f"The max_unsubscribe_all_loop limit ({limit}) has been reached, did you "
            "call subscribe() in an on_unsubscribe callback then call unsubscribe_all()? "
            "If this is expected you can use the max_unsubscribe_all_loop option to "
            "raise the limit"
        )
        self.limit = limit
