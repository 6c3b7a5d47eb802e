"""Policy guard: pure allow/deny decisions made before any I/O.

Everything here is a function of its arguments and the (immutable) config.
The SQL checks are textual heuristics, not a parser: a keyword inside a
comment or string literal is still flagged, and a ``WITH`` statement that
resolves to a write still classifies as read-only.
"""

import re
from enum import Enum
from urllib.parse import urlparse

BLOCKED_KEYWORDS: tuple[str, ...] = ("DROP", "TRUNCATE", "ALTER", "CREATE", "EXEC", "EXECUTE")
# Stored / extended procedure identifiers (sp_executesql, xp_cmdshell, ...).
BLOCKED_PREFIXES: tuple[str, ...] = ("sp_", "xp_")

_KEYWORD_RE = re.compile(r"\b(" + "|".join(BLOCKED_KEYWORDS) + r")\b", re.IGNORECASE)
_PREFIX_RE = re.compile(r"\b((?:" + "|".join(BLOCKED_PREFIXES) + r")\w*)", re.IGNORECASE)
_READ_ONLY_RE = re.compile(r"^(SELECT|WITH)", re.IGNORECASE)


class StatementClass(Enum):
    READ_ONLY = "read_only"
    MUTATING = "mutating"


def check_host(url: str, allowed_hosts: list[str], allow_all: bool = False) -> tuple[bool, str]:
    """Return (allowed, reason). Exact, case-insensitive host match only."""
    if allow_all:
        return True, ""
    try:
        host = urlparse(url).hostname or ""
    except ValueError as e:
        return False, f"Invalid URL format: {e}"
    if not host:
        return False, "Missing hostname"
    allowed = {h.strip().lower() for h in allowed_hosts if h and h.strip()}
    if host.lower() in allowed:
        return True, ""
    return False, f"Host '{host}' is not in the allowed hosts list"


def classify_statement(sql: str) -> StatementClass:
    """SELECT / WITH prefix (after leading whitespace) is read-only; anything else mutates."""
    if _READ_ONLY_RE.match((sql or "").lstrip()):
        return StatementClass.READ_ONLY
    return StatementClass.MUTATING


def find_blocked_keyword(sql: str) -> str | None:
    """Return the first blocked keyword or procedure identifier found, else None."""
    text = sql or ""
    match = _KEYWORD_RE.search(text)
    if match:
        return match.group(1).upper()
    match = _PREFIX_RE.search(text)
    if match:
        return match.group(1)
    return None


def contains_blocked_keyword(sql: str) -> bool:
    return find_blocked_keyword(sql) is not None


def effective_timeout(requested: int | None, default: int, maximum: int) -> int:
    """Requested value (or default when absent), never above maximum."""
    value = default if requested is None else requested
    return min(value, maximum)
