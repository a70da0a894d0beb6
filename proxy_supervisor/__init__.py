"""
Proxy Supervisor
Runs a proxy engine, re-emits its log output and points the active
network interface at the tunnel DNS while the engine's TUN adapter is up
"""

from .version import __author__, __version__

__all__ = ["__author__", "__version__"]
