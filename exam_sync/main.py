"""
Exam Sync Service - Main Application
Handles exam result callbacks and appointment sync webhooks
"""

import logging

from dotenv import load_dotenv

# Load environment variables FIRST before settings are built
load_dotenv()

from exam_sync.app_factory import create_app  # noqa: E402
from exam_sync.config import get_settings  # noqa: E402
from exam_sync.utils.logging_config import configure_logging  # noqa: E402

settings = get_settings()

# Configure centralized logging (container-aware: no timestamps in Docker/Fly.io)
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = create_app(settings)
