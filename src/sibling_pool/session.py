"""Scoped ownership of a PID registry and broadcast shutdown.

A driver opens a session before spawning workers. The session creates a
uniquely named temporary file, publishes its path as PARALLEL_PID_FILE so
children inherit it, and hands back the PidRegistry bound to it. When the
session ends, whether normally, by exception, or because the process received
a termination signal, the variable is removed and the file is deleted.

Example:
    >>> controller = ProcessGroupController(environ={})
    >>> with controller.session() as pids:
    ...     pids.add(4242)
    ...     controller.number_of_running_processes()
    1
    >>> controller.active
    False
"""

from __future__ import annotations

import contextlib
import logging
import os
from pathlib import Path
import signal
import tempfile
import threading
from typing import TYPE_CHECKING

from sibling_pool.environment import PID_FILE_ENV
from sibling_pool.errors import SignalDeliveryError
from sibling_pool.registry import PidRegistry


if TYPE_CHECKING:
    from collections.abc import Iterator, MutableMapping
    from types import FrameType


logger = logging.getLogger(__name__)

PID_FILE_PREFIX = 'sibling_pool-pidfile'


def _default_cleanup_signals() -> tuple[signal.Signals, ...]:
    names = ('SIGTERM', 'SIGHUP')
    return tuple(getattr(signal.Signals, name) for name in names if hasattr(signal.Signals, name))


def resolve_signal(sig: int | str | signal.Signals) -> signal.Signals:
    """Turn a signal number or name into a signal.Signals member.

    Names may be given with or without the SIG prefix.

    Example:
        >>> resolve_signal('TERM') is signal.SIGTERM
        True
        >>> resolve_signal(signal.SIGINT) is signal.SIGINT
        True

    Raises:
        ValueError: If the signal is unknown on this platform.
    """
    if isinstance(sig, str):
        name = sig.strip().upper()
        if not name.startswith('SIG'):
            name = f'SIG{name}'
        try:
            return signal.Signals[name]
        except KeyError:
            msg = f'Unknown signal name: {sig!r}'
            raise ValueError(msg) from None
    return signal.Signals(sig)


class ProcessGroupController:
    """Owns the PID registry for one run and can signal every worker in it.

    The controller is an explicit object rather than module state; pass it
    to whatever needs to see or signal the pool.

    Attributes:
        active: Whether a session is currently open.
    """

    def __init__(
        self,
        environ: MutableMapping[str, str] | None = None,
        tmp_dir: str | os.PathLike[str] | None = None,
        cleanup_signals: tuple[int, ...] | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            environ: Environment the registry path is published into.
                Defaults to os.environ, which child processes inherit.
            tmp_dir: Directory for the pid file. Defaults to the system temp dir.
            cleanup_signals: Signals that end the session with cleanup.
                Defaults to SIGTERM and SIGHUP where available.
        """
        self._environ: MutableMapping[str, str] = os.environ if environ is None else environ
        self._tmp_dir = tmp_dir
        self._cleanup_signals = _default_cleanup_signals() if cleanup_signals is None else cleanup_signals
        self._pids: PidRegistry | None = None
        self._previous_handlers: dict[int, object] = {}

    @property
    def active(self) -> bool:
        """Return True while a session is open."""
        return self._pids is not None

    @property
    def pids(self) -> PidRegistry:
        """Return the registry of the active session.

        Raises:
            RuntimeError: If no session is open.
        """
        if self._pids is None:
            msg = 'No active session. Use ProcessGroupController.session().'
            raise RuntimeError(msg)
        return self._pids

    @contextlib.contextmanager
    def session(self) -> Iterator[PidRegistry]:
        """Open a scoped registry session.

        The registry is created before the body runs, so workers spawned in
        the body can append to it straight away.

        Yields:
            The PidRegistry for this run.

        Raises:
            RuntimeError: If a session is already open on this controller.
        """
        if self._pids is not None:
            msg = 'A session is already active on this controller'
            raise RuntimeError(msg)

        fd, name = tempfile.mkstemp(prefix=PID_FILE_PREFIX, dir=self._tmp_dir)
        os.close(fd)
        path = Path(name)
        try:
            self._install_signal_handlers()
            self._environ[PID_FILE_ENV] = str(path)
            self._pids = PidRegistry(path)
            logger.debug('Opened pid registry session at %s', path)
            yield self._pids
        finally:
            blocked = self._block_cleanup_signals()
            try:
                path.unlink(missing_ok=True)
                self._environ.pop(PID_FILE_ENV, None)
                self._pids = None
                self._restore_signal_handlers()
            finally:
                self._unblock_signals(blocked)
            logger.debug('Closed pid registry session at %s', path)

    def _install_signal_handlers(self) -> None:
        """Route cleanup signals through SystemExit for the session's lifetime.

        Handlers can only be installed from the main thread; elsewhere the
        session still cleans up on normal and exceptional exit.
        """
        if threading.current_thread() is not threading.main_thread():
            return
        for sig in self._cleanup_signals:
            self._previous_handlers[int(sig)] = signal.signal(sig, self._handle_cleanup_signal)

    def _handle_cleanup_signal(self, signum: int, frame: FrameType | None) -> None:
        """Run the handler the session displaced, then exit through SystemExit."""
        previous = self._previous_handlers.get(signum)
        if callable(previous):
            previous(signum, frame)
        raise SystemExit(128 + signum)

    def _restore_signal_handlers(self) -> None:
        while self._previous_handlers:
            signum, handler = self._previous_handlers.popitem()
            # None means the handler was not installed from Python.
            signal.signal(signum, signal.SIG_DFL if handler is None else handler)  # type: ignore[arg-type]

    def _block_cleanup_signals(self) -> set[int]:
        """Hold back cleanup signals so a second one cannot interrupt teardown."""
        if not hasattr(signal, 'pthread_sigmask') or not self._previous_handlers:
            return set()
        signal.pthread_sigmask(signal.SIG_BLOCK, self._previous_handlers.keys())
        return set(self._previous_handlers)

    @staticmethod
    def _unblock_signals(blocked: set[int]) -> None:
        # Signals that arrived meanwhile go to the restored handlers.
        if blocked:
            signal.pthread_sigmask(signal.SIG_UNBLOCK, blocked)

    def broadcast_signal(self, sig: int | str | signal.Signals) -> list[int]:
        """Send a signal to every registered worker.

        Delivery is fire-and-forget and follows registration order. Workers
        that have already exited, or that we may not signal, are skipped.

        Args:
            sig: Signal number, signal.Signals member, or name ('TERM', 'SIGKILL').

        Returns:
            The PIDs the signal was delivered to.

        Raises:
            RuntimeError: If no session is open.
            SignalDeliveryError: If delivery fails for any other reason.
        """
        signum = resolve_signal(sig)
        delivered: list[int] = []
        for pid in self.pids.all():
            try:
                os.kill(pid, signum)
            except (ProcessLookupError, PermissionError) as exc:
                logger.debug('Skipping pid %d for %s: %s', pid, signum.name, exc)
                continue
            except OSError as exc:
                raise SignalDeliveryError.from_os_error(pid, int(signum), exc) from exc
            delivered.append(pid)
        return delivered

    def stop_all_processes(self, sig: int | str | signal.Signals = signal.SIGTERM) -> list[int]:
        """Signal all registered workers, SIGTERM by default."""
        return self.broadcast_signal(sig)

    def number_of_running_processes(self) -> int:
        """Return how many workers are registered in the active session."""
        return self.pids.count()
