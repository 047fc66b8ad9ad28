"""
Expiry policy for cached sessions.

The key half of a session carries its expiry as absolute epoch seconds in the
annotation. Annotations that are not integers never expire.
"""

import re
from datetime import datetime, timezone

_INTEGER_RE = re.compile(r"^[-+]?\d+$")


def expiry_timestamp(entry):
    """Return the expiry of an entry as epoch seconds, or None if it has none."""
    annotation = (entry.annotation or "").strip()
    if not _INTEGER_RE.match(annotation):
        return None
    return int(annotation)


def is_expired(entry, now):
    """True iff the annotation is an integer strictly less than now."""
    expires = expiry_timestamp(entry)
    return expires is not None and expires < now


def format_expiry(entry):
    """Human readable expiry for display, or None."""
    expires = expiry_timestamp(entry)
    if expires is None:
        return None
    return datetime.fromtimestamp(expires, timezone.utc).isoformat()
