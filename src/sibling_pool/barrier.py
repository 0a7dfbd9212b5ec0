"""Waiting for sibling workers to finish.

A worker that must do something exactly once at the end of a run (global
cleanup, an after-all hook) can wait here until it looks like the last worker
standing. The polling implementation watches the shared PID registry until
at most one PID remains.

This is a heuristic, not a true barrier: the count dropping to one means "I
appear to be the last", and the check races with siblings that register late.
There is no timeout, so a hung sibling blocks the caller indefinitely. Callers
depend on the Barrier protocol so a stronger rendezvous can replace polling
without changing them.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sibling_pool.environment import WorkerEnvironment
from sibling_pool.registry import PidRegistry


if TYPE_CHECKING:
    from collections.abc import Callable, Mapping


logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 1.0


@runtime_checkable
class Barrier(Protocol):
    """Protocol for waiting until sibling workers are done."""

    def wait_for_siblings_to_finish(self) -> None:
        """Block until this worker can proceed with end-of-run work."""
        ...


class PollingBarrier:
    """Barrier that polls the registry count once per interval.

    Example:
        >>> PollingBarrier(environ={}).wait_for_siblings_to_finish()
    """

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the barrier.

        Args:
            environ: Environment holding TEST_ENV_NUMBER and PARALLEL_PID_FILE.
                Defaults to os.environ.
            interval: Seconds to sleep between polls.
            sleep: Sleep function, replaceable in tests.
        """
        if interval <= 0:
            msg = f'interval must be positive, got {interval}'
            raise ValueError(msg)
        self._environ = environ
        self._interval = interval
        self._sleep = sleep

    @property
    def interval(self) -> float:
        """Return the poll interval in seconds."""
        return self._interval

    def number_of_running_processes(self) -> int:
        """Return how many workers are currently registered."""
        registry = PidRegistry.from_environ(self._environ)
        if registry is None:
            logger.warning('No pid registry published; treating the pool as empty')
            return 0
        return registry.count()

    def wait_for_siblings_to_finish(self) -> None:
        """Return once at most one worker is registered.

        Returns immediately when this process is not part of a parallel run.
        """
        if WorkerEnvironment.from_environ(self._environ).worker_index is None:
            return
        while (running := self.number_of_running_processes()) > 1:
            logger.debug('Waiting for %d sibling workers to finish', running - 1)
            self._sleep(self._interval)


def wait_for_other_processes_to_finish(environ: Mapping[str, str] | None = None) -> None:
    """Block until the other workers in this run have finished.

    Shortcut for PollingBarrier with the default one-second interval.
    """
    PollingBarrier(environ=environ).wait_for_siblings_to_finish()
