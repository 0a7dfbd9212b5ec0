"""Resolved pool settings.

PoolSettings bundles the worker count and multiplier a driver settles on at
startup. It is immutable: both values are resolved once per run.

Example:
    >>> settings = PoolSettings(worker_count=4, multiplier=1.5)
    >>> settings.pool_size
    6
    >>> PoolSettings.resolve(count='2', multiple='0.5', environ={}).pool_size
    1
"""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import TYPE_CHECKING

from sibling_pool.environment import (
    DEFAULT_MULTIPLIER,
    determine_multiple,
    determine_number_of_processes,
)


if TYPE_CHECKING:
    from collections.abc import Mapping


def _default_worker_count() -> int:
    """Return the worker count resolved from the current environment."""
    return determine_number_of_processes()


@dataclass(frozen=True, eq=True)
class PoolSettings:
    """Worker count and multiplier for one run.

    Attributes:
        worker_count: Base number of workers. Defaults to the resolved count.
        multiplier: Factor applied to worker_count. Defaults to 1.0.
    """

    worker_count: int = field(default_factory=_default_worker_count)
    multiplier: float = DEFAULT_MULTIPLIER

    def __post_init__(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If any configuration value is invalid.
        """
        if self.worker_count <= 0:
            msg = f'worker_count must be positive, got {self.worker_count}'
            raise ValueError(msg)

        if not math.isfinite(self.multiplier) or self.multiplier <= 0:
            msg = f'multiplier must be positive, got {self.multiplier}'
            raise ValueError(msg)

    @classmethod
    def resolve(
        cls,
        count: int | str | None = None,
        multiple: float | str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> PoolSettings:
        """Resolve settings from explicit values, the environment and defaults.

        Args:
            count: Explicit worker count, or None.
            multiple: Explicit multiplier, or None.
            environ: Environment to read overrides from. Defaults to os.environ.

        Returns:
            The resolved settings.

        Raises:
            ConfigParseError: If a winning value cannot be parsed.
        """
        return cls(
            worker_count=determine_number_of_processes(count, environ=environ),
            multiplier=determine_multiple(multiple, environ=environ),
        )

    @property
    def pool_size(self) -> int:
        """Return the number of workers to spawn, rounded half up, at least 1."""
        return max(1, math.floor(self.worker_count * self.multiplier + 0.5))
