"""Key helpers for addressing a session by its unordered participant pair."""

from __future__ import annotations

import hashlib

from duelarena.backend.errors import InvalidOpponent

PAIR_SEPARATOR = b"\x00"


def serialize_identity(identity: str) -> bytes:
    """Return the byte form used to order identities."""
    if not isinstance(identity, str) or identity.strip() == "" or "\x00" in identity:
        raise InvalidOpponent(f"Invalid participant identity: {identity!r}")
    return identity.encode("utf-8")


def canonical_pair(first: str, second: str) -> tuple[str, str]:
    """Order two identities by their serialized bytes, independent of call order."""
    if serialize_identity(first) <= serialize_identity(second):
        return first, second
    return second, first


def pair_key(first: str, second: str) -> str:
    """Create a fixed-width key via sha256(low + NUL + high)."""
    low, high = canonical_pair(first, second)
    payload = serialize_identity(low) + PAIR_SEPARATOR + serialize_identity(high)
    return hashlib.sha256(payload).hexdigest()


def advisory_lock_id(first: str, second: str) -> int:
    """Map a pair onto the signed 64-bit space of PostgreSQL advisory locks."""
    digest = bytes.fromhex(pair_key(first, second))
    return int.from_bytes(digest[:8], byteorder="big", signed=True)
