# proxy_supervisor/supervisor.py
# Version: 1.0.0
# Engine lifecycle: spawn, drain, react to TUN start-up, tear down

"""
Supervisor

Lifecycle: STARTING -> RUNNING -> TERMINATING -> STOPPED

- STARTING: resolve the working directory and spawn the engine in it with
  `-d <data dir>`. Any failure here is a SupervisorStartupError.
- RUNNING: SIGINT/SIGTERM kill the engine; a consumer thread reads the
  merged engine output one line at a time, re-logs it, and starts the DNS
  override in the background whenever the TUN-ready line shows up.
- TERMINATING: both engine streams are closed; reap the engine.
- STOPPED: the DNS override has been released, whatever the path here.
"""

import enum
import logging
import os
import signal
import threading
from typing import Callable, Dict, List, Optional

from proxy_supervisor.child import ChildProcess
from proxy_supervisor.classifier import classify, unstructured_event
from proxy_supervisor.constants import (
    ENGINE_DATA_DIR_FLAG,
    ENGINE_DEFAULT_BINARY,
    ENGINE_DEFAULT_DATA_DIR,
    ENGINE_LOGGER_NAME,
    TUN_READY_TRIGGER,
)
from proxy_supervisor.dns_control import DnsOverride
from proxy_supervisor.pidfile import create_pid_file, remove_pid_file
from proxy_supervisor.pump import OutputPump

logger = logging.getLogger(__name__)
engine_logger = logging.getLogger(ENGINE_LOGGER_NAME)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)
JOIN_INTERVAL = 0.5  # Seconds; keeps the main thread responsive to signals
KILL_REAP_TIMEOUT = 5.0


class SupervisorStartupError(Exception):
    """The engine could not be brought up"""

    pass


class State(enum.Enum):
    STARTING = "starting"
    RUNNING = "running"
    TERMINATING = "terminating"
    STOPPED = "stopped"


class Supervisor:
    """Runs one engine process to completion"""

    def __init__(
        self,
        dns_override: DnsOverride,
        binary: str = ENGINE_DEFAULT_BINARY,
        data_dir: str = ENGINE_DEFAULT_DATA_DIR,
        trigger: str = TUN_READY_TRIGGER,
        pass_through_unstructured: bool = False,
        pid_file: Optional[str] = None,
        install_signal_handlers: bool = True,
        spawn: Callable[[List[str], str], ChildProcess] = ChildProcess.spawn,
    ):
        self.dns_override = dns_override
        self.binary = binary
        self.data_dir = data_dir
        self.trigger = trigger
        self.pass_through_unstructured = pass_through_unstructured
        self.pid_file = pid_file
        self.install_signal_handlers = install_signal_handlers
        self._spawn = spawn

        self.child: Optional[ChildProcess] = None
        self.exit_status: Optional[int] = None
        self._state = State.STARTING
        self._previous_handlers: Dict[int, object] = {}

    @property
    def state(self) -> State:
        return self._state

    def _set_state(self, state: State):
        logger.debug(f"Supervisor state: {self._state.value} -> {state.value}")
        self._state = state

    def engine_command(self) -> List[str]:
        """Command line used to start the engine"""
        return [os.path.join(".", self.binary), ENGINE_DATA_DIR_FLAG, self.data_dir]

    def run(self) -> int:
        """
        Run the engine until its output is exhausted

        Returns:
            0 once the engine's output has been fully drained

        Raises:
            SupervisorStartupError: If the engine could not be started
        """
        self._set_state(State.STARTING)
        try:
            with self.dns_override:
                self.child = self._start_engine()
                try:
                    self._install_signal_handlers()
                    if self.pid_file:
                        create_pid_file(self.pid_file)
                    self._set_state(State.RUNNING)
                    self._drain()
                    self._set_state(State.TERMINATING)
                    self._reap()
                finally:
                    # The engine is still alive here only if startup failed half-way
                    if self.child.kill_if_running():
                        logger.info("Engine stopped during shutdown")
                        self.child.wait(KILL_REAP_TIMEOUT)
                    if self.pid_file:
                        remove_pid_file(self.pid_file)
        finally:
            # Handlers stay installed until DNS is restored
            self._restore_signal_handlers()
            self._set_state(State.STOPPED)
        return 0

    def _start_engine(self) -> ChildProcess:
        try:
            cwd = os.getcwd()
        except OSError as e:
            raise SupervisorStartupError(f"Failed to get current directory: {e}") from e

        command = self.engine_command()
        try:
            child = self._spawn(command, cwd)
        except (OSError, ValueError) as e:
            raise SupervisorStartupError(
                f"Failed to start engine {command[0]} (working directory: {cwd}): {e}"
            ) from e

        logger.info(f"Engine started with PID {child.pid}: {' '.join(command)}")
        return child

    def _install_signal_handlers(self):
        if not self.install_signal_handlers:
            return
        try:
            for signum in HANDLED_SIGNALS:
                self._previous_handlers[signum] = signal.signal(signum, self._signal_handler)
        except (OSError, ValueError) as e:
            raise SupervisorStartupError(f"Failed to install signal handler: {e}") from e

    def _restore_signal_handlers(self):
        while self._previous_handlers:
            signum, handler = self._previous_handlers.popitem()
            signal.signal(signum, handler)

    def _signal_handler(self, signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        self.interrupt()

    def interrupt(self) -> bool:
        """
        Stop the engine if it is still running

        Safe to call from a signal handler and concurrently with the engine
        exiting on its own.

        Returns:
            True if this call killed the engine
        """
        if self.child is None:
            return False

        status = self.child.poll()
        if status is not None:
            logger.info(f"Engine already exited with status {status}")
            return False

        logger.info("Terminating engine...")
        try:
            return self.child.kill_if_running()
        except OSError as e:
            logger.error(f"Failed to terminate engine: {e}")
            return False

    def _drain(self):
        pump = OutputPump([("stdout", self.child.stdout), ("stderr", self.child.stderr)])
        pump.start()
        consumer = threading.Thread(
            target=self._consume, args=(pump,), name="engine-output", daemon=True
        )
        consumer.start()
        while consumer.is_alive():
            consumer.join(JOIN_INTERVAL)
        if not pump.join(KILL_REAP_TIMEOUT):
            logger.debug("Engine output readers still running after drain")

    def _consume(self, pump: OutputPump):
        try:
            for line in pump:
                try:
                    self.handle_line(line)
                except Exception as e:
                    logger.error(f"Error handling engine output line: {e}")
        finally:
            pump.close()

    def handle_line(self, line: str):
        """React to and re-log one line of engine output"""
        if self.trigger in line:
            logger.warning("TUN adapter is up, setting DNS...")
            self.dns_override.activate()

        event = classify(line)
        if event is None:
            if not self.pass_through_unstructured:
                return
            event = unstructured_event(line)
        engine_logger.log(event.level, event.render())

    def _reap(self):
        self.exit_status = self.child.wait()
        self.child.close_streams()
        if self.child.killed:
            logger.info(f"Engine terminated (status {self.exit_status})")
        else:
            logger.info(f"Engine exited with status {self.exit_status}")
