"""Monotonic timing helpers for drivers reporting run durations."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Callable


def now() -> float:
    """Return monotonic clock time in seconds."""
    return time.monotonic()


def delta(func: Callable[..., Any], *args: Any, **kwargs: Any) -> float:
    """Call func and return how many seconds the call took.

    Example:
        >>> delta(lambda: None) >= 0
        True
    """
    before = now()
    func(*args, **kwargs)
    return now() - before
