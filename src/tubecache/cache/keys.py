"""Cache key generation: every result-affecting parameter is part of the key."""

from __future__ import annotations

import hashlib
import json
from typing import Any

from tubecache.types import ListParams, ResourceKind


def video_key(video_id: str) -> str:
    return f"video:{video_id}"


def channel_key(channel_id: str) -> str:
    return f"channel:{channel_id}"


def list_key(kind: ResourceKind, params: ListParams, channel_id: str | None = None) -> str:
    """Key for a paged listing.

    Keeps a readable prefix and hashes the full parameter set, so two
    listings that differ in any parameter never share an entry.
    """
    components = {
        "channel_id": channel_id,
        **params.model_dump(),
    }
    first = params.page_token or "first"
    return f"{kind.value}:{first}:{params.max_results}:{_hash_dict(components)[:16]}"


def _hash_dict(d: dict[str, Any]) -> str:
    """Deterministic hash of a dict via sorted JSON."""
    serialized = json.dumps(d, sort_keys=True, default=str)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()
