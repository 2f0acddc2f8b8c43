"""In-process publish/subscribe with a re-entrancy-safe delivery scheduler."""

from topicbus.channel import Channel, MultiSubscription, VoidChannel
from topicbus.errors import (
    ErrorKind,
    InvalidCallback,
    MaxRecursiveEmitReached,
    MaxSubscriptionCountReached,
    MaxUnsubscribeAllLoopReached,
    PubSubError,
    SubscriptionDestroyed,
)
from topicbus.keys import DEFAULT, ChannelKey, Keyed
from topicbus.options import SchedulerOptions, TopicOptions, load_scheduler_options
from topicbus.scheduler import RemoveHandle, Scheduler, create_scheduler
from topicbus.topic import Topic, VoidTopic, create_subscription, create_void_subscription

__all__ = [
    "Channel",
    "ChannelKey",
    "DEFAULT",
    "ErrorKind",
    "InvalidCallback",
    "Keyed",
    "MaxRecursiveEmitReached",
    "MaxSubscriptionCountReached",
    "MaxUnsubscribeAllLoopReached",
    "MultiSubscription",
    "PubSubError",
    "RemoveHandle",
    "Scheduler",
    "SchedulerOptions",
    "SubscriptionDestroyed",
    "Topic",
    "TopicOptions",
    "VoidChannel",
    "VoidTopic",
    "create_scheduler",
    "create_subscription",
    "create_void_subscription",
    "load_scheduler_options",
]
