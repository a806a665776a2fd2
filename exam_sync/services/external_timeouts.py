"""
Timeout configuration for external service calls.

Centralized timeout settings for the exam platform and the blob/record
stores. Every blocking call made while handling a delivery goes through one
of these.

Usage:
    from exam_sync.services.external_timeouts import exam_platform_timeout

    async with httpx.AsyncClient(timeout=exam_platform_timeout(settings)) as client:
        response = await client.get(url)
"""
import httpx

from exam_sync.config import Settings

# Connect budget is kept short; the platform is either reachable or not
PLATFORM_CONNECT_TIMEOUT = 5.0

# Supabase REST/storage - uploads of large HTML reports can be slow
DEFAULT_DB_TIMEOUT = 30.0


def exam_platform_timeout(settings: Settings) -> httpx.Timeout:
    """Timeout for outbound appointment calls and result retrieval."""
    total = settings.EXAM_PLATFORM_TIMEOUT_SECONDS
    return httpx.Timeout(total, connect=min(PLATFORM_CONNECT_TIMEOUT, total))


def storage_timeout(settings: Settings) -> float:
    """Upper bound in seconds for a single blob upload or row write."""
    return settings.STORAGE_TIMEOUT_SECONDS
