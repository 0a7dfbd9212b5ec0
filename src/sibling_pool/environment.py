"""Environment-driven configuration for a pool of sibling workers.

Worker processes learn everything about the pool through environment
variables inherited at spawn time. This module names those variables, resolves
the worker count and multiplier with a fixed precedence, and models the
per-worker variables as a typed value that can be read from, and written into,
an environment mapping.

Precedence for resolved values is always:

1. An explicit value passed by the caller.
2. The matching environment variable.
3. A computed default.

The first candidate whose string form is non-empty after stripping whitespace
wins, even if it then fails to parse.

Example:
    >>> determine_number_of_processes('4', environ={})
    4
    >>> determine_multiple(None, environ={})
    1.0
    >>> determine_number_of_processes(None, environ={'PARALLEL_TEST_PROCESSORS': '3'})
    3
"""

from __future__ import annotations

from dataclasses import dataclass
import math
import os
from typing import TYPE_CHECKING

from sibling_pool.errors import ConfigParseError


if TYPE_CHECKING:
    from collections.abc import Mapping


PROCESSORS_ENV = 'PARALLEL_TEST_PROCESSORS'
MULTIPLY_ENV = 'PARALLEL_TEST_MULTIPLY_PROCESSES'
PID_FILE_ENV = 'PARALLEL_PID_FILE'
WORKER_INDEX_ENV = 'TEST_ENV_NUMBER'
TOTAL_GROUPS_ENV = 'PARALLEL_TEST_GROUPS'

DEFAULT_MULTIPLIER = 1.0


def _environ(environ: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def _processor_count() -> int:
    """Return the number of available processors, at least 1."""
    return os.cpu_count() or 1


def _first_present(candidates: list[tuple[str, object]]) -> tuple[str, str]:
    """Return the first (source, value) whose string form is not blank."""
    for source, value in candidates:
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return source, text
    # The computed default is always present, so this is unreachable in practice.
    msg = 'No configuration candidate available'
    raise RuntimeError(msg)


def determine_number_of_processes(
    count: int | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Resolve how many worker processes to run.

    Args:
        count: Explicit worker count, e.g. from a command-line option.
        environ: Environment to read overrides from. Defaults to os.environ.

    Returns:
        The resolved worker count.

    Raises:
        ConfigParseError: If the winning candidate is not a positive integer.
    """
    env = _environ(environ)
    source, text = _first_present(
        [
            ('explicit', count),
            (PROCESSORS_ENV, env.get(PROCESSORS_ENV)),
            ('default', _processor_count()),
        ]
    )
    try:
        value = int(text)
    except ValueError:
        raise ConfigParseError(source, text, 'worker count') from None
    if value < 1:
        raise ConfigParseError(source, text, 'worker count')
    return value


def determine_multiple(
    multiple: float | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> float:
    """Resolve the multiplier applied to the base worker count.

    Args:
        multiple: Explicit multiplier.
        environ: Environment to read overrides from. Defaults to os.environ.

    Returns:
        The resolved multiplier. Defaults to DEFAULT_MULTIPLIER.

    Raises:
        ConfigParseError: If the winning candidate is not a positive number.
    """
    env = _environ(environ)
    source, text = _first_present(
        [
            ('explicit', multiple),
            (MULTIPLY_ENV, env.get(MULTIPLY_ENV)),
            ('default', DEFAULT_MULTIPLIER),
        ]
    )
    try:
        value = float(text)
    except ValueError:
        raise ConfigParseError(source, text, 'multiplier') from None
    if not math.isfinite(value) or value <= 0:
        raise ConfigParseError(source, text, 'multiplier')
    return value


@dataclass(frozen=True)
class WorkerEnvironment:
    """The per-worker slice of the environment.

    Values are kept as the raw strings found in the environment; a field is
    None when its variable is not set at all.

    Attributes:
        worker_index: 1-based index of this worker (TEST_ENV_NUMBER).
        total_groups: Number of groups in the run (PARALLEL_TEST_GROUPS).
        pid_file: Path of the shared PID registry (PARALLEL_PID_FILE).

    Example:
        >>> env = WorkerEnvironment.for_worker(2, 4, pid_file='/tmp/pids')
        >>> env.to_environ() == {
        ...     'TEST_ENV_NUMBER': '2',
        ...     'PARALLEL_TEST_GROUPS': '4',
        ...     'PARALLEL_PID_FILE': '/tmp/pids',
        ... }
        True
        >>> WorkerEnvironment.from_environ({}).worker_index is None
        True
    """

    worker_index: str | None = None
    total_groups: str | None = None
    pid_file: str | None = None

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> WorkerEnvironment:
        """Read the worker variables from an environment mapping."""
        env = _environ(environ)
        return cls(
            worker_index=env.get(WORKER_INDEX_ENV),
            total_groups=env.get(TOTAL_GROUPS_ENV),
            pid_file=env.get(PID_FILE_ENV),
        )

    @classmethod
    def for_worker(cls, index: int, total: int, pid_file: str | None = None) -> WorkerEnvironment:
        """Build the environment for the worker at a 1-based index."""
        if index < 1 or index > total:
            msg = f'worker index must be between 1 and {total}, got {index}'
            raise ValueError(msg)
        return cls(worker_index=str(index), total_groups=str(total), pid_file=pid_file)

    def to_environ(self) -> dict[str, str]:
        """Serialize the set fields into environment variables."""
        pairs = (
            (WORKER_INDEX_ENV, self.worker_index),
            (TOTAL_GROUPS_ENV, self.total_groups),
            (PID_FILE_ENV, self.pid_file),
        )
        return {key: value for key, value in pairs if value is not None}
