"""
QBot - Utilities Package
========================
"""

from .retry import (
    exponential_backoff,
    RETRYABLE_EXCEPTIONS,
)
from .helpers import (
    safe_fetch_message,
    safe_fetch_channel,
    truncate,
    sanitize_input,
    parse_role_ids,
)
from .discord_rate_limit import (
    log_http_error,
    send_message_with_retry,
    edit_message_with_retry,
    delete_message_safe,
    bulk_delete_safe,
)

__all__ = [
    # Retry
    "exponential_backoff",
    "RETRYABLE_EXCEPTIONS",
    # Safe fetch helpers
    "safe_fetch_message",
    "safe_fetch_channel",
    # String helpers
    "truncate",
    "sanitize_input",
    "parse_role_ids",
    # Discord rate limit utilities
    "log_http_error",
    "send_message_with_retry",
    "edit_message_with_retry",
    "delete_message_safe",
    "bulk_delete_safe",
]
