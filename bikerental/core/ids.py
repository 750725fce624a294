"""Identifiers: ULID entity ids and request trace ids."""

import re
from typing import Optional

import ulid

MAX_TRACE_ID_LENGTH = 128
_TRACE_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:\-]+$")


def generate_ulid() -> str:
    """New ULID string; used for bike, customer and reservation ids."""
    return str(ulid.ULID())


def accept_trace_id(value: Optional[str]) -> Optional[str]:
    """Return a caller-supplied trace id if it is safe to log and echo, else None."""
    if value is None:
        return None
    value = value.strip()
    if not value or len(value) > MAX_TRACE_ID_LENGTH:
        return None
    if not _TRACE_ID_PATTERN.match(value):
        return None
    return value
