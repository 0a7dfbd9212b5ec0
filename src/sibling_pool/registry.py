"""File-backed registry of worker PIDs shared by sibling processes.

The registry is a newline-delimited text file holding one decimal PID per
line. Any process that knows the path may append to it; only the process that
owns the session removes entries, by appending a tombstone line (the PID
prefixed with "-"), or deletes the file.

Appends are a single write of a whole line to a descriptor opened in append
mode, so concurrent writers from different processes never interleave or
truncate each other's entries. Reads always go back to disk; no handle or
cache is kept between calls, so every read reflects the latest appends from
any sibling. Readers do not lock and may briefly under-count.

Example:
    >>> import tempfile, pathlib
    >>> with tempfile.TemporaryDirectory() as tmp:
    ...     registry = PidRegistry(pathlib.Path(tmp) / 'pids')
    ...     registry.count()
    ...     registry.add(111)
    ...     registry.add(222)
    ...     registry.discard(111)
    ...     registry.all()
    0
    [222]
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from sibling_pool.environment import WorkerEnvironment


if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping


logger = logging.getLogger(__name__)


class PidRegistry:
    """Append-only set of worker PIDs persisted at a filesystem path.

    Attributes:
        path: Location of the backing file. It may not exist yet.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> PidRegistry | None:
        """Return the registry published in the environment, if any.

        Workers use this to find the registry their driver created.

        Args:
            environ: Environment to read PARALLEL_PID_FILE from. Defaults to os.environ.

        Returns:
            The registry, or None when no path is published.
        """
        pid_file = WorkerEnvironment.from_environ(environ).pid_file
        if not pid_file:
            return None
        return cls(pid_file)

    @property
    def path(self) -> Path:
        """Return the backing file path."""
        return self._path

    def add(self, pid: int) -> None:
        """Register a PID.

        A PID that is already registered is not written again.

        Args:
            pid: The process ID to add.
        """
        pid = int(pid)
        if pid in self.all():
            return
        self._append(f'{pid}\n')
        logger.debug('Registered pid %d in %s', pid, self._path)

    def discard(self, pid: int) -> None:
        """Remove a PID, if present.

        Only the owner of the registry calls this, typically after reaping a
        finished worker. Workers never remove entries. Removal appends a
        tombstone line (the PID with a leading '-') rather than rewriting
        the file, so it cannot drop a sibling's concurrent add.

        Args:
            pid: The process ID to remove.
        """
        pid = int(pid)
        if pid not in self.all():
            return
        self._append(f'-{pid}\n')
        logger.debug('Removed pid %d from %s', pid, self._path)

    def _append(self, line: str) -> None:
        """Write one whole line with a single append-mode write."""
        fd = os.open(self._path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o644)
        try:
            os.write(fd, line.encode('ascii'))
        finally:
            os.close(fd)

    def all(self) -> list[int]:
        """Return the registered PIDs in insertion order.

        Lines are replayed in file order: a PID line registers it, a
        tombstone removes it, and a later re-registration moves it to the end.

        Returns:
            The PIDs, each at most once. Empty if the file does not exist.
        """
        try:
            content = self._path.read_text(encoding='ascii', errors='replace')
        except FileNotFoundError:
            return []

        pids: dict[int, None] = {}
        for line in content.splitlines():
            text = line.strip()
            if not text:
                continue
            try:
                value = int(text)
            except ValueError:
                logger.warning('Skipping malformed line %r in pid file %s', text, self._path)
                continue
            if value < 0:
                pids.pop(-value, None)
            else:
                pids.setdefault(value, None)
        return list(pids)

    def count(self) -> int:
        """Return the number of registered PIDs."""
        return len(self.all())

    def __len__(self) -> int:
        return self.count()

    def __iter__(self) -> Iterator[int]:
        return iter(self.all())

    def __contains__(self, pid: object) -> bool:
        return pid in self.all()

    def __repr__(self) -> str:
        return f'{type(self).__name__}({str(self._path)!r})'
