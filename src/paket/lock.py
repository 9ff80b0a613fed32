"""Advisory lock serializing operations on the installation root."""

import fcntl
import logging
import time
from pathlib import Path
from types import TracebackType
from typing import TextIO

from paket.constants import LOCK_TIMEOUT
from paket.exceptions import LockError, PaketIOError

logger = logging.getLogger(__name__)


class PaketLock:
    """Exclusive `flock` on the root's lock file.

    Use as a context manager; the lock is released on every exit path.

    Args:
        path: Lock file path, created if missing.
        timeout: Seconds to wait for a concurrent holder before raising `LockError`.
        poll_interval: Sleep between non-blocking attempts.
    """

    def __init__(self, path: Path, timeout: float = LOCK_TIMEOUT, poll_interval: float = 0.1):
        if timeout <= 0:
            raise ValueError(f"timeout must be positive (got {timeout})")
        self.path = Path(path)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._handle: TextIO | None = None

    @property
    def locked(self) -> bool:
        return self._handle is not None

    def acquire(self) -> None:
        if self._handle is not None:
            raise LockError(f"Lock {self.path} is already held by this process")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(self.path, "a+")
        except OSError as e:
            raise PaketIOError(f"lock file {self.path}: {e}") from e
        start = time.monotonic()
        while True:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except OSError:
                if time.monotonic() - start >= self.timeout:
                    handle.close()
                    raise LockError(
                        f"Could not lock {self.path} within {self.timeout}s, is another paket running?",
                        context={"path": str(self.path)},
                    )
                time.sleep(self.poll_interval)
        self._handle = handle
        logger.debug(f"Acquired {self.path}")

    def release(self) -> None:
        if self._handle is None:
            return
        try:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
        finally:
            self._handle.close()
            self._handle = None
            logger.debug(f"Released {self.path}")

    def __enter__(self) -> "PaketLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
