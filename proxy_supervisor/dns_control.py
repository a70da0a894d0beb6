# proxy_supervisor/dns_control.py
# Version: 1.0.0
# System DNS override for the active network interface

"""
DNS Controller

Points the active interface's resolver at the engine's DNS listener while
the tunnel is up, and puts it back to automatic configuration afterwards.

This is the only side effect of the supervisor that outlives the process,
so failures are logged but never raised: a broken DNS command must not
take the supervisor down with it.
"""

import logging
import subprocess
import threading
import time
from typing import Callable, List, Optional

from proxy_supervisor.constants import (
    DNS_ACTIVATION_ADDRESS,
    DNS_COMMAND_TIMEOUT,
    DNS_RESTORE_VALUE,
    DNS_SET_COMMAND,
    DNS_SET_FLAG,
)
from proxy_supervisor.interfaces import resolve_active_interface

logger = logging.getLogger(__name__)


def set_dns_servers(
    interface_name: str,
    value: str,
    command: str = DNS_SET_COMMAND,
    timeout: float = DNS_COMMAND_TIMEOUT,
    runner: Callable = subprocess.run,
) -> bool:
    """
    Run the OS DNS-set command for one interface

    Args:
        interface_name: Network service name, e.g. "Wi-Fi"
        value: DNS server address, or the restore sentinel
        command: DNS-set executable
        timeout: Seconds to wait for the command
        runner: subprocess.run compatible callable

    Returns:
        True if the command ran and exited 0
    """
    args = [command, DNS_SET_FLAG, interface_name, value]
    try:
        result = runner(args, capture_output=True, text=True, timeout=timeout, check=False)
    except subprocess.TimeoutExpired:
        logger.error(f"DNS command timed out after {timeout}s: {' '.join(args)}")
        return False
    except (OSError, subprocess.SubprocessError) as e:
        logger.error(f"Failed to set DNS on {interface_name}: {e}")
        return False

    if result.returncode != 0:
        detail = (result.stderr or result.stdout or "").strip()
        logger.error(
            f"Failed to set DNS on {interface_name} to {value}: "
            f"exit status {result.returncode}{': ' + detail if detail else ''}"
        )
        return False

    logger.info(f"DNS on {interface_name} set to {value}")
    return True


class DnsController:
    """Applies DNS values to whichever interface is active at call time"""

    def __init__(
        self,
        command: str = DNS_SET_COMMAND,
        timeout: float = DNS_COMMAND_TIMEOUT,
        resolver: Callable[[], Optional[str]] = resolve_active_interface,
        runner: Callable = subprocess.run,
    ):
        self.command = command
        self.timeout = timeout
        self.resolver = resolver
        self.runner = runner
        self._pending: List[threading.Thread] = []
        self._pending_lock = threading.Lock()

    def set_dns(self, value: str) -> bool:
        """Set DNS on the active interface; no-op when there is none"""
        interface_name = self.resolver()
        if not interface_name:
            logger.debug(f"No active interface, skipping DNS change to {value}")
            return False
        return set_dns_servers(
            interface_name, value, command=self.command, timeout=self.timeout, runner=self.runner
        )

    def activate_async(self, address: str = DNS_ACTIVATION_ADDRESS) -> threading.Thread:
        """Set DNS from a background thread; the caller does not wait for it"""
        thread = threading.Thread(
            target=self.set_dns, args=(address,), name="dns-activate", daemon=True
        )
        with self._pending_lock:
            self._pending = [t for t in self._pending if t.is_alive()]
            self._pending.append(thread)
        thread.start()
        return thread

    def wait_pending(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for background DNS changes still in flight

        Returns:
            True if none is left running
        """
        with self._pending_lock:
            pending = list(self._pending)

        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in pending:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            thread.join(remaining)

        still_running = [t for t in pending if t.is_alive()]
        if still_running:
            logger.warning(f"{len(still_running)} DNS change(s) still running at shutdown")
        return not still_running


class DnsOverride:
    """
    Scoped DNS override

    Entering the scope does nothing; `activate()` may be called any number
    of times while inside it. Leaving the scope, however that happens,
    restores automatic DNS exactly once.
    """

    def __init__(
        self,
        controller: DnsController,
        activation_address: str = DNS_ACTIVATION_ADDRESS,
        restore_value: str = DNS_RESTORE_VALUE,
    ):
        self.controller = controller
        self.activation_address = activation_address
        self.restore_value = restore_value
        self._lock = threading.Lock()
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def activate(self) -> Optional[threading.Thread]:
        """Start applying the activation address in the background"""
        with self._lock:
            if self._released:
                logger.debug("DNS override already released, ignoring activation")
                return None
            return self.controller.activate_async(self.activation_address)

    def release(self) -> bool:
        """Restore automatic DNS; only the first call has any effect"""
        with self._lock:
            if self._released:
                return False
            self._released = True

        # An activation finishing after the restore would leave the override in place
        self.controller.wait_pending(self.controller.timeout)
        logger.info("Restoring DNS settings...")
        self.controller.set_dns(self.restore_value)
        return True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
