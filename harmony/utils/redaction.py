"""
PII Redaction

Scrubs personal information out of text before it is embedded or stored:
- Email addresses -> [EMAIL_REDACTED]
- Phone numbers -> [PHONE_REDACTED]

The sentinel tokens contain no digits and no '@', so running the filter
again over its own output changes nothing.
"""

import re
from typing import Optional

from harmony.utils.logging import get_logger

logger = get_logger(__name__, category="security")

EMAIL_TOKEN = "[EMAIL_REDACTED]"
PHONE_TOKEN = "[PHONE_REDACTED]"

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

# Optional +country code, optional parenthesised area code, space/dot/dash separators
PHONE_PATTERN = re.compile(r"(\+\d{1,2}\s?)?\(?\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4}")


class RedactionFilter:
    """Pattern-based PII scrubber applied before anything is persisted."""

    def __init__(
        self,
        email_token: str = EMAIL_TOKEN,
        phone_token: str = PHONE_TOKEN,
    ) -> None:
        self.email_token = email_token
        self.phone_token = phone_token

    def redact(self, text: Optional[str]) -> Optional[str]:
        """
        Replace emails and phone numbers with sentinel tokens.

        Emails go first so that digits inside an address are never
        mistaken for a phone number.

        Args:
            text: Original text that may contain PII

        Returns:
            Text with PII redacted (empty input is returned as-is)
        """
        if not text:
            return text

        redacted, emails = EMAIL_PATTERN.subn(self.email_token, text)
        redacted, phones = PHONE_PATTERN.subn(self.phone_token, redacted)

        if emails or phones:
            logger.debug(f"Redacted {emails} email(s) and {phones} phone number(s)")
        return redacted

    def contains_pii(self, text: Optional[str]) -> bool:
        """Return True if the text holds anything the filter would redact."""
        if not text:
            return False
        return bool(EMAIL_PATTERN.search(text) or PHONE_PATTERN.search(text))


_default_filter = RedactionFilter()


def redact_pii(text: Optional[str]) -> Optional[str]:
    """
    Convenience wrapper around the default filter.

    Usage:
        clean = redact_pii(user_message)
    """
    return _default_filter.redact(text)


def contains_pii(text: Optional[str]) -> bool:
    return _default_filter.contains_pii(text)
