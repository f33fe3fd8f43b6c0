"""
cachebench - fetch strategy benchmark

Compares three ways of serving a bounded list of products:
- store:  primary store only, repopulating the cache window every time
- cache:  cache window only, falling back to the store on a cold cache
- hybrid: cache-aside with merge-on-miss

and records per-strategy timing histories for later reporting.
"""

__version__ = '0.1.0'

from cachebench.core.config import CacheBenchConfig, get_config, set_config
from cachebench.core.coordinator import HybridFetchCoordinator
from cachebench.core.errors import (
    CacheBenchError,
    CacheUnavailable,
    DeserializationError,
    InvalidRequest,
    StoreUnavailable,
)
from cachebench.core.models import Entity, FetchResponse, FetchResult, TimingEntry
from cachebench.core.strategies import FetchStrategy

__all__ = [
    'HybridFetchCoordinator',
    'FetchStrategy',
    'Entity',
    'FetchResult',
    'FetchResponse',
    'TimingEntry',
    'CacheBenchConfig',
    'get_config',
    'set_config',
    'CacheBenchError',
    'InvalidRequest',
    'StoreUnavailable',
    'CacheUnavailable',
    'DeserializationError',
]
