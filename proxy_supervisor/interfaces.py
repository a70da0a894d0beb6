# proxy_supervisor/interfaces.py
# Version: 1.0.0
# Active network interface discovery

"""
Interface Resolver

Finds the hardware network service that currently carries IPv4 traffic,
i.e. the one whose DNS settings must be changed. Interfaces are looked up
fresh on every call so that a Wi-Fi/Ethernet switch between calls is seen.

Sources:
- psutil: interface names (in enumeration order), IPv4 addresses, up/down
- the IPv4 routing table: which interfaces have a default gateway
- the hardware port list: which interfaces are physical, and their
  service name ("Wi-Fi", "Ethernet", ...)
"""

import ipaddress
import logging
import socket
import subprocess
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import psutil

from proxy_supervisor.constants import (
    HARDWARE_PORTS_COMMAND,
    INTERFACE_QUERY_TIMEOUT,
    ROUTE_TABLE_COMMAND,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkInterface:
    """Snapshot of one OS network interface"""

    name: str
    is_physical: bool
    ipv4: Tuple[str, ...] = ()
    gateway: Optional[str] = None
    friendly_name: Optional[str] = None


def _run_query(command: List[str]) -> Optional[str]:
    """Run a read-only system query, None if it could not be run"""
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=INTERFACE_QUERY_TIMEOUT,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f"Could not run {' '.join(command)}: {e}")
        return None

    if result.returncode != 0:
        logger.debug(f"{' '.join(command)} exited with status {result.returncode}")
        return None
    return result.stdout


def parse_default_gateways(output: str) -> Dict[str, str]:
    """Parse `netstat -rn -f inet` output into {device: IPv4 gateway}

    Only default routes whose gateway is an IPv4 address count; tunnel
    routes show up as `link#N` and are skipped.
    """
    gateways: Dict[str, str] = {}
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 4 or parts[0] != "default":
            continue
        gateway, device = parts[1], parts[3]
        try:
            ipaddress.IPv4Address(gateway)
        except ValueError:
            continue
        gateways.setdefault(device, gateway)
    return gateways


def parse_hardware_ports(output: str) -> Dict[str, str]:
    """Parse `networksetup -listallhardwareports` output into {device: port name}"""
    mapping: Dict[str, str] = {}
    current_port = None
    for line in output.splitlines():
        line = line.strip()
        if line.startswith("Hardware Port:"):
            current_port = line.split(":", 1)[1].strip()
        elif line.startswith("Device:") and current_port:
            device = line.split(":", 1)[1].strip()
            mapping[device] = current_port
            current_port = None
    return mapping


def list_interfaces() -> List[NetworkInterface]:
    """Enumerate OS network interfaces"""
    addresses = psutil.net_if_addrs()
    stats = psutil.net_if_stats()
    gateways = parse_default_gateways(_run_query(ROUTE_TABLE_COMMAND) or "")
    hardware_ports = parse_hardware_ports(_run_query(HARDWARE_PORTS_COMMAND) or "")

    interfaces = []
    for name, addrs in addresses.items():
        ipv4 = tuple(addr.address for addr in addrs if addr.family == socket.AF_INET)
        is_up = name in stats and stats[name].isup
        is_loopback = any(ipaddress.IPv4Address(ip).is_loopback for ip in ipv4)
        interfaces.append(
            NetworkInterface(
                name=name,
                is_physical=name in hardware_ports and is_up and not is_loopback,
                ipv4=ipv4,
                gateway=gateways.get(name),
                friendly_name=hardware_ports.get(name),
            )
        )
    return interfaces


def select_active_interface(interfaces: Iterable[NetworkInterface]) -> Optional[str]:
    """
    Pick the active interface from an enumeration

    The first interface (in enumeration order) that is physical, has an
    IPv4 address and a gateway wins.

    Returns:
        Its friendly name, or None when nothing qualifies
    """
    for interface in interfaces:
        if interface.is_physical and interface.ipv4 and interface.gateway:
            return interface.friendly_name
    return None


def resolve_active_interface() -> Optional[str]:
    """Friendly name of the active physical interface, None if there is none"""
    try:
        interfaces = list_interfaces()
    except (OSError, psutil.Error) as e:
        logger.debug(f"Interface enumeration failed: {e}")
        return None

    name = select_active_interface(interfaces)
    if name is None:
        logger.debug("No physical interface with an IPv4 address and gateway found")
    else:
        logger.debug(f"Active network interface: {name}")
    return name
