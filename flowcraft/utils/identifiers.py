"""ID generation and timestamp utilities."""

import uuid
from datetime import datetime, timezone


def generate_workflow_id() -> str:
    """Generate a unique workflow ID (UUID4)."""
    return str(uuid.uuid4())


def generate_id_suffix() -> str:
    """Generate a short suffix used to de-duplicate colliding node/edge IDs (9-char hex)."""
    return uuid.uuid4().hex[:9]


def utc_timestamp() -> str:
    """Generate an ISO8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()
