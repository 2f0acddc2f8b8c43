"""Option records for schedulers and topics, plus YAML loading."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

Hook = Callable[[], None]

DEFAULT_MAX_SUBSCRIPTION_COUNT = 10_000
DEFAULT_MAX_RECURSIVE_EMIT = 1_000
DEFAULT_MAX_UNSUBSCRIBE_ALL_LOOP = 1_000

DEFAULT_OPTIONS_PATH = Path("config") / "scheduler.yaml"


class TopicOptions(BaseModel):
    """Per-topic lifecycle hooks."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    on_first_subscription: Hook | None = None
    on_last_unsubscribe: Hook | None = None


class SchedulerOptions(BaseModel):
    """Scheduler-wide lifecycle hooks and loop guards."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    on_first_subscription: Hook | None = None
    on_last_unsubscribe: Hook | None = None
    on_destroy: Hook | None = None
    max_subscription_count: int = Field(default=DEFAULT_MAX_SUBSCRIPTION_COUNT, gt=0)
    max_recursive_emit: int = Field(default=DEFAULT_MAX_RECURSIVE_EMIT, gt=0)
    max_unsubscribe_all_loop: int = Field(default=DEFAULT_MAX_UNSUBSCRIBE_ALL_LOOP, gt=0)

    def limits(self) -> dict[str, int]:
        """Return only the numeric guards."""
        return {
            "max_subscription_count": self.max_subscription_count,
            "max_recursive_emit": self.max_recursive_emit,
            "max_unsubscribe_all_loop": self.max_unsubscribe_all_loop,
        }


def coerce_scheduler_options(
    options: SchedulerOptions | Mapping[str, Any] | None = None, **overrides: Any
) -> SchedulerOptions:
    """Build ``SchedulerOptions`` from a model, a mapping, or keyword arguments."""
    if isinstance(options, SchedulerOptions) and not overrides:
        return options
    data: dict[str, Any] = (
        options.model_dump() if isinstance(options, SchedulerOptions) else dict(options or {})
    )
    data.update(overrides)
    return SchedulerOptions(**data)


def coerce_topic_options(
    options: TopicOptions | Mapping[str, Any] | None = None, **overrides: Any
) -> TopicOptions:
    if isinstance(options, TopicOptions) and not overrides:
        return options
    data: dict[str, Any] = (
        options.model_dump() if isinstance(options, TopicOptions) else dict(options or {})
    )
    data.update(overrides)
    return TopicOptions(**data)


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML from file, returning empty mapping when missing."""
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Options file must contain a mapping: {path}")
    return data


def load_scheduler_options(path: Path, **hooks: Hook | None) -> SchedulerOptions:
    """Read loop guards from a YAML file; hooks are supplied in code."""
    return coerce_scheduler_options(load_yaml(path), **hooks)
