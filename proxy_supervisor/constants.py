# proxy_supervisor/constants.py
# Version: 1.0.0
# Supervisor constants - all hardcoded values in one place for easy configuration

"""
Proxy Supervisor Constants

All hardcoded values are defined here at the top of the module for easy
visibility and modification.
"""

import logging
import re

# =============================================================================
# ENGINE PROCESS
# =============================================================================
ENGINE_DEFAULT_BINARY = "mihomo-darwin-arm64"
ENGINE_DATA_DIR_FLAG = "-d"
ENGINE_DEFAULT_DATA_DIR = "."  # Relative to the working directory
CHILD_POLL_INTERVAL = 0.05  # Seconds between exit checks while waiting on the engine

# =============================================================================
# ENGINE LOG FORMAT
# =============================================================================
# time="2024-05-01T10:00:00.123456789+08:00" level=info msg="..."
# Only the first three fractional digits of the timestamp are captured.
ENGINE_LOG_PATTERN = re.compile(
    r'time="(.*?)\.(\d{3})\d*([+-]\d{2}:\d{2})"\s+level=(\w+)\s+msg="(.*?)"'
)

# Case-sensitive engine level token -> logging level
ENGINE_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}
ENGINE_DEFAULT_LEVEL = logging.INFO
ENGINE_LOGGER_NAME = "proxy_supervisor.engine"

# =============================================================================
# DNS OVERRIDE
# =============================================================================
TUN_READY_TRIGGER = "[TUN] Tun adapter listening at: utun"
DNS_ACTIVATION_ADDRESS = "198.18.0.2"  # Engine's fake-ip DNS listener
DNS_RESTORE_VALUE = "empty"  # networksetup sentinel: back to DHCP-provided DNS
DNS_SET_COMMAND = "networksetup"
DNS_SET_FLAG = "-setdnsservers"
DNS_COMMAND_TIMEOUT = 30.0  # Seconds before a DNS command is given up on

# =============================================================================
# INTERFACE DISCOVERY
# =============================================================================
ROUTE_TABLE_COMMAND = ["netstat", "-rn", "-f", "inet"]
HARDWARE_PORTS_COMMAND = ["networksetup", "-listallhardwareports"]
INTERFACE_QUERY_TIMEOUT = 5.0  # Seconds

# =============================================================================
# FILES AND LOGGING
# =============================================================================
DEFAULT_CONFIG_FILE = "proxy-supervisor.cfg"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 5
SYSLOG_ADDRESS = "/dev/log"
