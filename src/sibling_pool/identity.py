"""Where this worker sits in the pool.

Example:
    >>> identity = ProcessIdentity(WorkerEnvironment(worker_index='3', total_groups='3'))
    >>> identity.is_first_worker(), identity.is_last_worker()
    (False, True)
    >>> solo = ProcessIdentity(WorkerEnvironment())
    >>> solo.is_first_worker(), solo.is_last_worker()
    (True, True)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sibling_pool.environment import WorkerEnvironment


if TYPE_CHECKING:
    from collections.abc import Mapping


class ProcessIdentity:
    """First/last worker checks derived from the worker environment."""

    def __init__(self, environment: WorkerEnvironment) -> None:
        self._environment = environment

    @classmethod
    def current(cls, environ: Mapping[str, str] | None = None) -> ProcessIdentity:
        """Return the identity of the running process."""
        return cls(WorkerEnvironment.from_environ(environ))

    @property
    def environment(self) -> WorkerEnvironment:
        return self._environment

    @property
    def is_parallel(self) -> bool:
        """Return True when running as one worker of a parallel run."""
        return self._environment.worker_index is not None

    @property
    def worker_number(self) -> int:
        """Return the worker index, or 0 when absent or not an integer."""
        try:
            return int(self._environment.worker_index or '')
        except ValueError:
            return 0

    def is_first_worker(self) -> bool:
        """Return True for the first worker, and for solo runs."""
        return self.worker_number <= 1

    def is_last_worker(self) -> bool:
        """Return True for the last worker, and for solo runs.

        The index and group count are compared as strings, so both must be
        canonical decimals ('01' does not match '1').
        """
        index = self._environment.worker_index
        total = self._environment.total_groups
        if index is None and total is None:
            return True
        if index is None:
            index = '1'
        return index == total
