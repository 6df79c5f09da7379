"""
Log sanitization helpers for authorization decisions.

Role lists and user ids come from tokens and membership records, i.e.
from outside the process. Before they reach a log line they are stripped of
CR/LF and other control characters (CWE-117 log injection) and truncated.

Security References:
- OWASP Logging Cheat Sheet: https://cheatsheetseries.owasp.org/cheatsheets/Logging_Cheat_Sheet.html
"""

import re
from collections.abc import Iterable
from typing import Any

# Maximum length for logged user input to prevent log flooding
MAX_LOG_INPUT_LENGTH = 200

# Number of user id characters kept in logs
USER_ID_PREFIX_LENGTH = 8


def sanitize_for_log(value: Any, max_length: int = MAX_LOG_INPUT_LENGTH) -> str:
    """
    Sanitize a value for safe logging by removing CRLF and limiting length.

    Args:
        value: Value to sanitize (will be converted to string)
        max_length: Maximum length of output (default: 200)

    Returns:
        Sanitized string safe for logging

    Example:
        >>> sanitize_for_log("admin\\n[FAKE] granted")
        'admin [FAKE] granted'
    """
    text = str(value)
    text = text.replace("\r", " ").replace("\n", " ").replace("\t", " ")
    text = re.sub(r"[\x00-\x1f\x7f-\x9f]", " ", text)

    if len(text) > max_length:
        text = text[:max_length] + "..."

    return text


def sanitize_roles(roles: Iterable[Any] | None) -> str:
    """Render a role list as one sanitized, comma-separated string."""
    if not roles:
        return ""
    return sanitize_for_log(",".join(str(role) for role in roles))


def user_id_prefix(user_id: str | None) -> str:
    """Truncated, sanitized user id for correlation without full exposure."""
    if not user_id:
        return ""
    return sanitize_for_log(user_id[:USER_ID_PREFIX_LENGTH]) + "..."
