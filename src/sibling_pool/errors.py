"""Error types raised by sibling-pool.

Two failure classes are surfaced to callers:

- ConfigParseError: a worker count or multiplier could not be resolved to a
  usable number. This is a fatal configuration error and should abort the run
  before any worker is spawned.
- SignalDeliveryError: a broadcast signal could not be delivered for a reason
  other than the target already being gone or not being ours to signal.

A registry file that does not exist is deliberately not an error; it reads as
an empty registry.
"""

from __future__ import annotations


class ConfigParseError(ValueError):
    """Raised when a configuration value is not a valid positive number.

    Attributes:
        source: Where the value came from ('explicit', an environment
            variable name, or 'default').
        value: The raw value that failed to parse.
        expected: What the value should have been, e.g. 'worker count'.
    """

    def __init__(self, source: str, value: object, expected: str) -> None:
        self.source = source
        self.value = value
        self.expected = expected
        msg = f'Invalid {expected} from {source}: {value!r}'
        super().__init__(msg)

    def __reduce__(self) -> tuple[type[ConfigParseError], tuple[str, object, str]]:
        return (type(self), (self.source, self.value, self.expected))


class SignalDeliveryError(OSError):
    """Raised when a signal cannot be delivered to a registered worker.

    Attributes:
        pid: The process the signal was addressed to.
        signal: The signal number.
        reason: The operating system's description of the failure.
    """

    def __init__(self, pid: int, signal: int, errno: int | None = None, reason: str = '') -> None:
        self.pid = pid
        self.signal = signal
        self.reason = reason
        super().__init__(errno, f'Could not send signal {signal} to pid {pid}: {reason}')

    @classmethod
    def from_os_error(cls, pid: int, signal: int, cause: OSError) -> SignalDeliveryError:
        """Build the error from the OSError raised by os.kill."""
        return cls(pid, signal, cause.errno, cause.strerror or str(cause))

    def __reduce__(self) -> tuple[type[SignalDeliveryError], tuple[int, int, int | None, str]]:
        return (type(self), (self.pid, self.signal, self.errno, self.reason))
