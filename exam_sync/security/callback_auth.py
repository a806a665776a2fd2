"""
Callback authentication for the exam result webhook.

Exactly one scheme is active per deployment. Checks never raise: anything
unexpected, an unknown scheme, or an unconfigured secret rejects the request.
"""

import hmac
import logging
from typing import Mapping, Optional

from exam_sync.config import AuthScheme, Settings

logger = logging.getLogger(__name__)


class CallbackAuthValidator:
    """Verifies inbound callback headers against the configured scheme"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.scheme = settings.auth_scheme

        if self.scheme is None:
            logger.error(
                f"Unknown callback auth scheme '{settings.CALLBACK_AUTH_SCHEME}' - all callbacks will be rejected"
            )
        elif self.scheme == AuthScheme.NONE:
            logger.warning("Callback auth scheme is 'none' - exam result callbacks are NOT authenticated")

    def validate(self, headers: Mapping[str, str]) -> bool:
        """
        Check a callback's headers.

        Args:
            headers: Request headers (any mapping; lookup is case-insensitive)

        Returns:
            True if the request carries the expected credential, False otherwise
        """
        try:
            return self._check(_lowercase(headers))
        except Exception as e:
            logger.error(f"Callback auth check errored, rejecting: {type(e).__name__}")
            return False

    def _check(self, headers: Mapping[str, str]) -> bool:
        s = self.settings

        if self.scheme == AuthScheme.NONE:
            return True

        if self.scheme == AuthScheme.BEARER:
            if not s.CALLBACK_BEARER_TOKEN:
                return _unconfigured("CALLBACK_BEARER_TOKEN")
            return _matches(headers.get("authorization"), f"Bearer {s.CALLBACK_BEARER_TOKEN}")

        if self.scheme == AuthScheme.API_TOKEN:
            if not s.CALLBACK_API_TOKEN:
                return _unconfigured("CALLBACK_API_TOKEN")
            return _matches(headers.get(s.CALLBACK_API_TOKEN_HEADER.lower()), s.CALLBACK_API_TOKEN)

        if self.scheme == AuthScheme.KEY_SECRET:
            if not s.CALLBACK_KEY or not s.CALLBACK_SECRET:
                return _unconfigured("CALLBACK_KEY/CALLBACK_SECRET")
            # Evaluate both so a wrong key and a wrong secret take the same path
            key_ok = _matches(headers.get(s.CALLBACK_KEY_HEADER.lower()), s.CALLBACK_KEY)
            secret_ok = _matches(headers.get(s.CALLBACK_SECRET_HEADER.lower()), s.CALLBACK_SECRET)
            return key_ok and secret_ok

        if self.scheme == AuthScheme.CUSTOM:
            if not s.CALLBACK_CUSTOM_HEADER or not s.CALLBACK_CUSTOM_VALUE:
                return _unconfigured("CALLBACK_CUSTOM_HEADER/CALLBACK_CUSTOM_VALUE")
            return _matches(headers.get(s.CALLBACK_CUSTOM_HEADER.lower()), s.CALLBACK_CUSTOM_VALUE)

        return False


def _lowercase(headers: Mapping[str, str]) -> dict:
    return {str(k).lower(): v for k, v in headers.items()}


def _matches(received: Optional[str], expected: str) -> bool:
    if received is None:
        return False
    # hmac.compare_digest for timing attack protection
    return hmac.compare_digest(received.encode("utf-8"), expected.encode("utf-8"))


def _unconfigured(name: str) -> bool:
    logger.error(f"Callback verification FAILED - {name} not configured")
    return False
