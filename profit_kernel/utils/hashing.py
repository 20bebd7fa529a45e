"""
Hash chain primitives for the audit trail.

Both audit sinks (in-memory and SQL) link events with these functions, so a
chain written by one can be re-validated by the other.  Payloads are hashed
over a canonical JSON form: sorted keys, no whitespace, Decimals normalized
and datetimes rendered in UTC.
"""

import hashlib
import json
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

GENESIS = "GENESIS"


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value.normalize())
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.isoformat()
    if isinstance(value, (date, UUID)):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Cannot hash value of type {type(value).__name__}")


def canonical_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_encode)


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hash_payload(payload: dict) -> str:
    """SHA-256 of the canonical JSON form of an audit payload."""
    return _sha256(canonical_json(payload))


def hash_audit_event(
    entity_type: str,
    entity_id: str,
    action: str,
    payload_hash: str,
    prev_hash: str | None,
) -> str:
    """
    Link hash of one audit event.

    Covers the event's identity, its payload hash and the previous event's
    hash (``GENESIS`` for the first event), so editing or reordering any
    stored event changes every hash after it.
    """
    return _sha256(
        canonical_json([entity_type, str(entity_id), action, payload_hash, prev_hash or GENESIS])
    )
