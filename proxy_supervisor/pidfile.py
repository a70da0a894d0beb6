import logging
import os

logger = logging.getLogger(__name__)


def create_pid_file(pid_file: str):
    """Create PID file with directory validation"""
    try:
        pid_dir = os.path.dirname(pid_file)
        if pid_dir and not os.path.exists(pid_dir):
            try:
                os.makedirs(pid_dir, mode=0o755)
                logger.info(f"Created PID directory: {pid_dir}")
            except OSError as e:
                logger.error(f"Failed to create PID directory {pid_dir}: {e}")
                raise

        with open(pid_file, "w") as f:
            f.write(str(os.getpid()))
        logger.info(f"PID file created: {pid_file}")
    except OSError as e:
        logger.error(f"Failed to create PID file {pid_file}: {e}")


def remove_pid_file(pid_file: str):
    """Remove PID file"""
    try:
        if os.path.exists(pid_file):
            os.unlink(pid_file)
            logger.info(f"PID file removed: {pid_file}")
    except OSError as e:
        logger.error(f"Failed to remove PID file {pid_file}: {e}")
