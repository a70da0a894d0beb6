"""
pytest configuration for proxy-supervisor tests

This file ensures tests can find the proxy_supervisor package and the shared
test helpers regardless of environment
"""

import sys
from pathlib import Path

# Add parent directory to path so tests can import proxy_supervisor
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))
