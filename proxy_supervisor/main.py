#!/usr/bin/env python3
"""
Main entry point for Proxy Supervisor
Runs the proxy engine in the current directory and manages system DNS
"""

import argparse
import logging
import logging.handlers
import os
import sys

from proxy_supervisor.config import ConfigError, SupervisorConfig, validate_dns_address
from proxy_supervisor.constants import (
    DEFAULT_CONFIG_FILE,
    DNS_COMMAND_TIMEOUT,
    DNS_RESTORE_VALUE,
    DNS_SET_COMMAND,
    ENGINE_DEFAULT_BINARY,
    ENGINE_DEFAULT_DATA_DIR,
    LOG_FILE_BACKUP_COUNT,
    LOG_FILE_MAX_BYTES,
    SYSLOG_ADDRESS,
    TUN_READY_TRIGGER,
)


def setup_logging(log_file=None, log_level="INFO", syslog=False):
    """Setup logging configuration"""
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Engine lines carry their own timestamp
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter("[%(levelname)s]: %(message)s"))
    root_logger.addHandler(console_handler)

    if log_file and log_file.lower() != "none":
        try:
            log_dir = os.path.dirname(log_file)
            if log_dir and not os.path.exists(log_dir):
                os.makedirs(log_dir, mode=0o755)

            file_handler = logging.handlers.RotatingFileHandler(
                log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUP_COUNT
            )
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            root_logger.addHandler(file_handler)
        except OSError as e:
            print(f"Warning: Could not setup file logging to {log_file}: {e}")

    if syslog:
        try:
            syslog_handler = logging.handlers.SysLogHandler(address=SYSLOG_ADDRESS)
            syslog_handler.setFormatter(
                logging.Formatter("proxy-supervisor[%(process)d]: %(levelname)s - %(message)s")
            )
            root_logger.addHandler(syslog_handler)
        except OSError as e:
            print(f"Warning: Could not setup syslog: {e}")


def _parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Run the proxy engine from the current directory, re-log its output "
        "and point system DNS at the engine while its TUN adapter is up.",
        epilog="DNS is always restored to automatic configuration on exit.",
    )
    parser.add_argument(
        "-c", "--config", default=DEFAULT_CONFIG_FILE, help="Configuration file path"
    )
    parser.add_argument("-b", "--binary", help="Engine executable in the current directory")
    parser.add_argument("-l", "--logfile", help="Log file path (overrides config)")
    parser.add_argument(
        "-L", "--loglevel", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level"
    )
    parser.add_argument("--dns", help="DNS server to use while the tunnel is up")
    parser.add_argument(
        "--pass-through",
        action="store_true",
        help="Log engine lines that are not structured log records verbatim",
    )
    parser.add_argument("--pidfile", help="PID file path")
    parser.add_argument("-v", "--version", action="store_true", help="Show version")

    return parser.parse_args(argv)


def _handle_version_check(args):
    """Handle version check and exit if requested"""
    if args.version:
        from proxy_supervisor import __version__

        print(f"Proxy Supervisor version {__version__}")
        sys.exit(0)


def _load_configuration(config_path):
    """Load configuration from file"""
    return SupervisorConfig(config_path)


def _get_logging_config(config, args):
    """Get logging configuration from config and args"""
    log_file = args.logfile or config.get("log-file", "log-file")
    log_level = args.loglevel or config.get("log-file", "debug-level", "INFO")
    syslog = config.getboolean("log-file", "syslog", False)

    return log_file, log_level, syslog


def _get_supervisor_config(config, args):
    """Get engine and DNS configuration from config and args"""
    if args.dns:
        activation_address = validate_dns_address(args.dns.strip())
    else:
        activation_address = config.get_activation_address()

    return {
        "binary": args.binary or config.get("engine", "binary", ENGINE_DEFAULT_BINARY),
        "data_dir": config.get("engine", "data-dir", ENGINE_DEFAULT_DATA_DIR),
        "pass_through": args.pass_through
        or config.getboolean("engine", "pass-through-unstructured", False),
        "activation_address": activation_address,
        "restore_value": config.get("dns", "restore-value", DNS_RESTORE_VALUE),
        "dns_command": config.get("dns", "command", DNS_SET_COMMAND),
        "dns_timeout": config.getfloat("dns", "command-timeout", DNS_COMMAND_TIMEOUT),
        "trigger": config.get("dns", "trigger", TUN_READY_TRIGGER),
        "pid_file": args.pidfile or config.get("supervisor", "pid-file"),
    }


def _log_config(supervisor_config, logger):
    """Log the effective configuration"""
    logger.info("Configuration loaded:")
    logger.info(f"  Engine: {supervisor_config['binary']} -d {supervisor_config['data_dir']}")
    logger.info(f"  Tunnel DNS: {supervisor_config['activation_address']}")
    logger.info(f"  DNS command: {supervisor_config['dns_command']}")
    logger.info(
        f"  Unstructured lines: "
        f"{'passed through' if supervisor_config['pass_through'] else 'dropped'}"
    )


def _create_supervisor(supervisor_config):
    """Wire the DNS controller, override scope and supervisor together"""
    from proxy_supervisor.dns_control import DnsController, DnsOverride
    from proxy_supervisor.supervisor import Supervisor

    controller = DnsController(
        command=supervisor_config["dns_command"], timeout=supervisor_config["dns_timeout"]
    )
    dns_override = DnsOverride(
        controller,
        activation_address=supervisor_config["activation_address"],
        restore_value=supervisor_config["restore_value"],
    )
    return Supervisor(
        dns_override,
        binary=supervisor_config["binary"],
        data_dir=supervisor_config["data_dir"],
        trigger=supervisor_config["trigger"],
        pass_through_unstructured=supervisor_config["pass_through"],
        pid_file=supervisor_config["pid_file"],
    )


def main(argv=None):
    """Main entry point"""
    from proxy_supervisor.supervisor import SupervisorStartupError

    args = _parse_arguments(argv)

    _handle_version_check(args)

    logger = logging.getLogger("proxy_supervisor")
    try:
        config = _load_configuration(args.config)

        log_file, log_level, syslog = _get_logging_config(config, args)
        setup_logging(log_file, log_level, syslog)

        logger.info("Starting Proxy Supervisor")

        supervisor_config = _get_supervisor_config(config, args)
        _log_config(supervisor_config, logger)

        supervisor = _create_supervisor(supervisor_config)
        exit_code = supervisor.run()

    except (ConfigError, SupervisorStartupError) as e:
        print(f"Error starting proxy supervisor: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error starting proxy supervisor: {e}", file=sys.stderr)
        import traceback

        traceback.print_exc()
        sys.exit(1)

    logger.info("Proxy Supervisor stopped")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
