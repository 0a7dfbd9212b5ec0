"""sibling-pool: coordination primitives for parallel test worker processes.

A driver resolves how many workers to run, opens a registry session, and
spawns the workers. Each worker registers its PID, checks whether it is the
first or last worker, and can wait for its siblings before end-of-run work.

Example:
    Driver side::

        settings = PoolSettings.resolve(count=args.count)
        controller = ProcessGroupController()
        with controller.session() as pids:
            for index in range(1, settings.pool_size + 1):
                env = WorkerEnvironment.for_worker(index, settings.pool_size)
                proc = subprocess.Popen(cmd, env={**os.environ, **env.to_environ()})
                pids.add(proc.pid)
            ...

    Worker side::

        if ProcessIdentity.current().is_last_worker():
            wait_for_other_processes_to_finish()
            run_after_all_hook()
"""

from __future__ import annotations

from sibling_pool.barrier import Barrier, PollingBarrier, wait_for_other_processes_to_finish
from sibling_pool.config import PoolSettings
from sibling_pool.environment import (
    WorkerEnvironment,
    determine_multiple,
    determine_number_of_processes,
)
from sibling_pool.errors import ConfigParseError, SignalDeliveryError
from sibling_pool.identity import ProcessIdentity
from sibling_pool.registry import PidRegistry
from sibling_pool.session import ProcessGroupController


__version__ = '0.1.0'
__all__ = [
    'Barrier',
    'ConfigParseError',
    'PidRegistry',
    'PollingBarrier',
    'PoolSettings',
    'ProcessGroupController',
    'ProcessIdentity',
    'SignalDeliveryError',
    'WorkerEnvironment',
    '__version__',
    'determine_multiple',
    'determine_number_of_processes',
    'wait_for_other_processes_to_finish',
]
