"""Idempotency keys for payment gateway operations."""

import hashlib
import json
from typing import Any
from uuid import UUID


def generate_idempotency_key(
    operation: str,
    entity_id: UUID | str,
    params: dict[str, Any] | None = None,
) -> str:
    """Generate a deterministic idempotency key.

    Re-issuing the same gateway operation for the same booking yields the
    same key, so the processor deduplicates retries.

    Args:
        operation: Operation name (e.g., "authorize_charge", "refund")
        entity_id: Primary entity ID
        params: Additional parameters to include in key

    Returns:
        SHA256 hash of operation + entity + params
    """
    key_data = {
        "operation": operation,
        "entity_id": str(entity_id),
        "params": params or {},
    }
    key_str = json.dumps(key_data, sort_keys=True, default=str)
    return hashlib.sha256(key_str.encode()).hexdigest()
