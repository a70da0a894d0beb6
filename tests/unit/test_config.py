#!/usr/bin/env python3
"""Unit tests for configuration loading"""

import pytest

from test_utils import create_temp_config, create_test_config

from proxy_supervisor.config import ConfigError, SupervisorConfig, validate_dns_address
from proxy_supervisor.constants import TUN_READY_TRIGGER


class TestSupervisorConfig:
    def test_defaults_when_file_missing(self, tmp_path, capsys):
        config = SupervisorConfig(str(tmp_path / "missing.cfg"))

        assert config.get("engine", "binary") == "mihomo-darwin-arm64"
        assert config.get("engine", "data-dir") == "."
        assert config.getboolean("engine", "pass-through-unstructured") is False
        assert config.get_activation_address() == "198.18.0.2"
        assert config.get("dns", "restore-value") == "empty"
        assert config.get("dns", "trigger") == TUN_READY_TRIGGER
        assert config.getfloat("dns", "command-timeout") == 30.0
        assert "not found" in capsys.readouterr().err

    def test_values_from_file(self):
        config = SupervisorConfig(str(create_test_config(binary="engine-x", pass_through="yes")))

        assert config.get("engine", "binary") == "engine-x"
        assert config.getboolean("engine", "pass-through-unstructured") is True
        assert config.getfloat("dns", "command-timeout") == 5.0
        assert config.get("log-file", "debug-level") == "DEBUG"
        # Untouched options keep their defaults
        assert config.get("dns", "command") == "networksetup"

    def test_fallbacks(self, tmp_path):
        config = SupervisorConfig(str(tmp_path / "missing.cfg"))

        assert config.get("nope", "nothing", "fallback") == "fallback"
        assert config.get("supervisor", "pid-file") is None
        assert config.getfloat("engine", "binary", 1.5) == 1.5
        assert config.getboolean("engine", "binary", True) is True

    def test_invalid_activation_address(self):
        config = SupervisorConfig(str(create_test_config(dns="not-an-ip")))
        with pytest.raises(ConfigError, match="Invalid DNS server address"):
            config.get_activation_address()

    def test_unparsable_file(self):
        path = create_temp_config("this is not an ini file\n")
        with pytest.raises(ConfigError, match="Error reading config file"):
            SupervisorConfig(str(path))

    def test_percent_signs_are_literal(self):
        path = create_temp_config("[dns]\ntrigger = 100% ready\n")
        assert SupervisorConfig(str(path)).get("dns", "trigger") == "100% ready"


class TestValidateDnsAddress:
    @pytest.mark.parametrize("address", ["198.18.0.2", "1.1.1.1", "2606:4700:4700::1111"])
    def test_valid(self, address):
        assert validate_dns_address(address) == address

    @pytest.mark.parametrize("address", ["", "empty", "198.18.0", "dns.example.com"])
    def test_invalid(self, address):
        with pytest.raises(ConfigError):
            validate_dns_address(address)
