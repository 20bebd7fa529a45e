"""Utility functions for the profit kernel."""

from profit_kernel.utils.hashing import GENESIS, canonical_json, hash_audit_event, hash_payload

__all__ = [
    "GENESIS",
    "canonical_json",
    "hash_payload",
    "hash_audit_event",
]
