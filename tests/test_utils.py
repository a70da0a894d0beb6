#!/usr/bin/env python3
"""
Test utilities for proxy supervisor tests

Provides common functionality for all tests including:
- Creating test configurations
- Fake engine processes (small Python scripts run as real child processes)
- A recording stand-in for the DNS-set command
"""

import subprocess
import sys
import tempfile
import textwrap
import threading
from pathlib import Path

from proxy_supervisor.child import ChildProcess
from proxy_supervisor.constants import TUN_READY_TRIGGER
from proxy_supervisor.dns_control import DnsController, DnsOverride


def engine_line(message, level="info", timestamp="2024-05-01T10:00:00.123456789+08:00"):
    """Build one structured engine log line"""
    return f'time="{timestamp}" level={level} msg="{message}"'


TRIGGER_LINE = engine_line(f"{TUN_READY_TRIGGER}4")


def engine_script(stdout_lines=(), stderr_lines=(), sleep=0.0, exit_code=0):
    """
    Python source for a fake engine

    Writes the given lines to stdout/stderr (flushed line by line), then
    optionally sleeps before exiting with exit_code.
    """
    return textwrap.dedent(
        f"""
        import sys, time
        for line in {list(stdout_lines)!r}:
            sys.stdout.write(line + "\\n")
            sys.stdout.flush()
        for line in {list(stderr_lines)!r}:
            sys.stderr.write(line + "\\n")
            sys.stderr.flush()
        time.sleep({sleep!r})
        sys.exit({exit_code!r})
        """
    )


def spawn_script(source):
    """Spawn callable for Supervisor that runs `source` instead of the engine"""

    def spawn(args, cwd):
        spawn.args = args
        spawn.cwd = cwd
        return ChildProcess.spawn([sys.executable, "-c", source], cwd)

    spawn.args = None
    spawn.cwd = None
    return spawn


class RecordingRunner:
    """subprocess.run stand-in recording every DNS command"""

    def __init__(self, returncode=0, block_values=()):
        self.calls = []
        self.returncode = returncode
        self.block_values = set(block_values)
        self.release = threading.Event()
        self.started = threading.Event()
        self._lock = threading.Lock()

    def __call__(self, args, **kwargs):
        value = args[-1]
        with self._lock:
            self.calls.append(list(args))
        if value in self.block_values:
            self.started.set()
            self.release.wait(10)
        return subprocess.CompletedProcess(args, self.returncode, "", "")

    @property
    def values(self):
        with self._lock:
            return [call[-1] for call in self.calls]


def make_override(runner=None, interface="Wi-Fi", timeout=10.0):
    """DnsOverride over a controller that never touches the real system"""
    runner = runner or RecordingRunner()
    controller = DnsController(
        command="networksetup", timeout=timeout, resolver=lambda: interface, runner=runner
    )
    return DnsOverride(controller), runner


def create_temp_config(content, filename="temp_test.cfg"):
    """
    Create a temporary test configuration file.

    Args:
        content: Configuration content
        filename: Name for temp file

    Returns:
        Path: Path to created config file
    """
    temp_dir = Path(tempfile.mkdtemp(prefix="proxy-supervisor-"))
    config_path = temp_dir / filename
    config_path.write_text(content)
    return config_path


TEST_CONFIG_TEMPLATE = """# Test Proxy Supervisor Configuration
[engine]
binary = {binary}
pass-through-unstructured = {pass_through}

[dns]
activation-address = {dns}
command-timeout = 5

[log-file]
log-file = none
debug-level = DEBUG
"""


def create_test_config(binary="fake-engine", dns="198.18.0.2", pass_through="no"):
    """Create a test configuration with specified parameters."""
    content = TEST_CONFIG_TEMPLATE.format(binary=binary, dns=dns, pass_through=pass_through)
    return create_temp_config(content)
