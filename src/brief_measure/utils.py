"""
Utility functions for the brief-measure client.

Includes time helpers and identifier generation.
"""

import secrets
import time
import uuid
from datetime import datetime, timezone
from typing import Optional, Union


def generate_id() -> str:
    """Generate a UUID string for in-memory record identity."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def parse_datetime(dt: Union[str, datetime]) -> datetime:
    """Parse datetime from string or return datetime object (naive -> UTC)."""
    if isinstance(dt, str):
        dt = datetime.fromisoformat(dt.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def uuid7(timestamp_ms: Optional[int] = None) -> str:
    """
    Generate a time-ordered UUID (version 7) string.

    The top 48 bits carry the Unix time in milliseconds, followed by the
    version nibble, 74 random bits and the RFC 4122 variant.

    Args:
        timestamp_ms: Override for the embedded timestamp (defaults to now)

    Returns:
        Lower-case canonical UUID string
    """
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000

    rand = bytearray(secrets.token_bytes(10))
    raw = bytearray((timestamp_ms & 0xFFFF_FFFF_FFFF).to_bytes(6, "big")) + rand
    raw[6] = (raw[6] & 0x0F) | 0x70
    raw[8] = (raw[8] & 0x3F) | 0x80
    return str(uuid.UUID(bytes=bytes(raw)))


def uuid7_timestamp_ms(value: str) -> int:
    """Extract the millisecond timestamp embedded in a UUIDv7 string."""
    return uuid.UUID(value).int >> 80
