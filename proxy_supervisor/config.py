import configparser
import ipaddress
import os
import sys
from typing import Any, Optional

from proxy_supervisor.constants import (
    DEFAULT_CONFIG_FILE,
    DNS_ACTIVATION_ADDRESS,
    DNS_COMMAND_TIMEOUT,
    DNS_RESTORE_VALUE,
    DNS_SET_COMMAND,
    ENGINE_DEFAULT_BINARY,
    ENGINE_DEFAULT_DATA_DIR,
    TUN_READY_TRIGGER,
)


class ConfigError(Exception):
    """Invalid or unreadable configuration"""

    pass


class SupervisorConfig:
    """Configuration manager for the proxy supervisor"""

    DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_FILE
    DEFAULT_CONFIG = {
        "engine": {
            "binary": ENGINE_DEFAULT_BINARY,
            "data-dir": ENGINE_DEFAULT_DATA_DIR,
            "pass-through-unstructured": "false",
        },
        "dns": {
            "activation-address": DNS_ACTIVATION_ADDRESS,
            "restore-value": DNS_RESTORE_VALUE,
            "command": DNS_SET_COMMAND,
            "command-timeout": str(DNS_COMMAND_TIMEOUT),
            "trigger": TUN_READY_TRIGGER,
        },
        "supervisor": {},
        "log-file": {
            "log-file": "none",
            "debug-level": "INFO",
            "syslog": "false",
        },
    }

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        # The trigger contains brackets and colons, keep values literal
        self.config = configparser.ConfigParser(interpolation=None)
        self._load_defaults()
        self._load_config()

    def _load_defaults(self):
        """Load default configuration"""
        for section, options in self.DEFAULT_CONFIG.items():
            self.config.add_section(section)
            for key, value in options.items():
                self.config.set(section, key, value)

    def _load_config(self):
        """Load configuration from file"""
        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    self.config.read_file(f)
            except (OSError, configparser.Error) as e:
                raise ConfigError(f"Error reading config file {self.config_path}: {e}") from e
        else:
            print(
                f"Warning: Config file {self.config_path} not found, using defaults",
                file=sys.stderr,
            )

    def get(self, section: str, option: str, fallback: Any = None) -> str:
        """Get configuration value"""
        try:
            return self.config.get(section, option)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return fallback

    def getfloat(self, section: str, option: str, fallback: float = 0.0) -> float:
        """Get float configuration value"""
        try:
            return self.config.getfloat(section, option)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return fallback

    def getboolean(self, section: str, option: str, fallback: bool = False) -> bool:
        """Get boolean configuration value"""
        try:
            return self.config.getboolean(section, option)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return fallback

    def get_activation_address(self) -> str:
        """Get the DNS server the active interface is pointed at while the tunnel is up

        Returns:
            The address as configured, after checking it is an IP literal

        Raises:
            ConfigError: If the configured value is not an IPv4/IPv6 address
        """
        address = self.get("dns", "activation-address", DNS_ACTIVATION_ADDRESS).strip()
        return validate_dns_address(address)


def validate_dns_address(address: str) -> str:
    """Check that a DNS server value is an IP literal, return it unchanged"""
    try:
        ipaddress.ip_address(address)
    except ValueError:
        raise ConfigError(f"Invalid DNS server address: {address!r}") from None
    return address
