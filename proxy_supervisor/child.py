# proxy_supervisor/child.py
# Version: 1.0.0
# Shared handle to the engine process

"""
Child process handle shared by the supervisor loop and the interrupt handler.

Every poll/kill goes through one reentrant lock. It has to be reentrant:
Python runs signal handlers on the main thread, between two bytecodes of
whatever the main thread was doing, possibly while it holds the lock.
"""

import logging
import subprocess
import threading
import time
from typing import IO, List, Optional

from proxy_supervisor.constants import CHILD_POLL_INTERVAL

logger = logging.getLogger(__name__)


class ChildProcess:
    """Engine process with serialized wait/kill"""

    def __init__(self, popen: subprocess.Popen):
        self._popen = popen
        self._lock = threading.RLock()
        self._killed = False

    @classmethod
    def spawn(cls, args: List[str], cwd: str) -> "ChildProcess":
        """Start a process with stdout and stderr captured as byte pipes"""
        popen = subprocess.Popen(
            args,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        return cls(popen)

    @property
    def pid(self) -> int:
        return self._popen.pid

    @property
    def stdout(self) -> Optional[IO[bytes]]:
        return self._popen.stdout

    @property
    def stderr(self) -> Optional[IO[bytes]]:
        return self._popen.stderr

    @property
    def killed(self) -> bool:
        """Whether a kill was issued through this handle"""
        return self._killed

    def poll(self) -> Optional[int]:
        """Exit status if the process has exited, otherwise None"""
        with self._lock:
            return self._popen.poll()

    def kill_if_running(self) -> bool:
        """
        Kill the process unless it has already exited

        Returns:
            True if this call issued the kill
        """
        with self._lock:
            if self._killed or self._popen.poll() is not None:
                return False
            # Set first: a signal handler may re-enter between kill() and return
            self._killed = True
            try:
                self._popen.kill()
            except OSError:
                self._killed = False
                raise
            return True

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """
        Wait for the process to exit

        The lock is only held for each individual poll so that a concurrent
        kill is never blocked behind a wait.

        Returns:
            Exit status, or None if timeout expired first
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            status = self.poll()
            if status is not None:
                return status
            if deadline is not None and time.monotonic() >= deadline:
                return None
            time.sleep(CHILD_POLL_INTERVAL)

    def close_streams(self):
        """Close our ends of the output pipes"""
        for stream in (self._popen.stdout, self._popen.stderr):
            if stream is not None:
                try:
                    stream.close()
                except OSError as e:
                    logger.debug(f"Error closing engine pipe: {e}")
