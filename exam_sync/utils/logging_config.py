"""
Centralized Logging Configuration

Provides consistent logging setup across the service.
When running in containers (Docker/Kubernetes/Fly.io), timestamps are omitted
from the Python log formatter since container runtimes add their own timestamps.

Usage:
    from exam_sync.utils.logging_config import configure_logging
    configure_logging(settings.LOG_LEVEL)
"""
import os
import sys
import logging
from typing import Union

# Detect container environment
IS_CONTAINERIZED = bool(
    os.environ.get('FLY_APP_NAME') or  # Fly.io
    os.environ.get('KUBERNETES_SERVICE_HOST') or  # Kubernetes
    os.path.exists('/.dockerenv')  # Docker
)

# Log format without timestamp for containers (runtime adds it)
CONTAINER_FORMAT = "[%(name)s] %(levelname)s: %(message)s"

# Log format with timestamp for local development
LOCAL_FORMAT = "[%(asctime)s] [%(name)s] %(levelname)s: %(message)s"

# Date format for local development
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Union[int, str] = logging.INFO, force: bool = False) -> None:
    """
    Configure logging for the service.

    Args:
        level: Logging level, as a number or a name such as "INFO"
        force: Force reconfiguration even if already configured
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()

    # Avoid reconfiguring if already set up (unless forced)
    if root_logger.handlers and not force:
        return

    if force:
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

    log_format = CONTAINER_FORMAT if IS_CONTAINERIZED else LOCAL_FORMAT
    datefmt = None if IS_CONTAINERIZED else DATE_FORMAT

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(log_format, datefmt=datefmt))

    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    # Suppress noisy third-party loggers (request lines carry result URLs)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('hpack').setLevel(logging.WARNING)
