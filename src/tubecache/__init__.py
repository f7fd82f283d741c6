"""tubecache: local caching and quota governance for a quota-limited video API."""

from tubecache.cache.engine import CacheEngine
from tubecache.client.facade import ResourceClient
from tubecache.core import TubeCache
from tubecache.quota.governor import QuotaGovernor
from tubecache.types import FetchResult, FetchStatus, ListParams, Namespace, ResourceKind

__version__ = "0.1.0"

__all__ = [
    "TubeCache",
    "CacheEngine",
    "QuotaGovernor",
    "ResourceClient",
    "FetchResult",
    "FetchStatus",
    "ListParams",
    "Namespace",
    "ResourceKind",
]
