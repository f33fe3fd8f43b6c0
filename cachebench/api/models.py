"""
Pydantic models for cachebench API requests and responses.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FetchRequestModel(BaseModel):
    """Request model for the fetch endpoint. Values are validated by parse_fetch_request."""
    model_config = ConfigDict(extra="forbid")

    strategy: Optional[str] = Field(default=None, description="'store', 'cache' or 'hybrid' ('db' is accepted)")
    mode: Optional[str] = Field(default=None, description="Alias of strategy used by the demo UI")
    limit: Optional[Any] = Field(default=None, description="Number of products to return (positive)")


class EntityModel(BaseModel):
    id: str
    name: str
    price: float
    description: str
    company: str
    avatar: str
    material: str
    created_at: str


class TimingsModel(BaseModel):
    total: float = 0.0
    storeQueryMs: float = 0.0
    cacheReadMs: float = 0.0
    cacheWriteMs: float = 0.0


class FetchResponseModel(BaseModel):
    """Response envelope for a fetch invocation (successful or not)."""
    succeeded: bool
    entities: List[EntityModel] = Field(default_factory=list)
    count: int = 0
    requestedStrategy: Optional[str] = None
    resolvedStrategy: Optional[str] = None
    cacheHit: bool = False
    ttlRemaining: Optional[int] = Field(default=None, description="Seconds left on the cache window, when known")
    timings: TimingsModel = Field(default_factory=TimingsModel)
    error: Optional[str] = None


class TimingEntryModel(BaseModel):
    timestamp: int = Field(description="Milliseconds since epoch")
    total: float = Field(description="Total fetch time in ms")


class ReportResponse(BaseModel):
    """Raw timing histories, oldest entry first."""
    store: List[TimingEntryModel] = Field(default_factory=list)
    cache: List[TimingEntryModel] = Field(default_factory=list)
    hybrid: List[TimingEntryModel] = Field(default_factory=list)


class StrategyStatsModel(BaseModel):
    strategy: str
    count: int
    avg: float
    min: float
    max: float
    rank: int


class ReportSummaryResponse(BaseModel):
    """Strategies ranked by mean total time (rank 1 is fastest)."""
    ranking: List[StrategyStatsModel]


class CacheKeyInfoResponse(BaseModel):
    key: str
    type: str
    ttl: int
    length: int
    size: int
    sample: List[str] = Field(default_factory=list)


class CacheInfoResponse(BaseModel):
    window: CacheKeyInfoResponse
    server: Dict[str, Any] = Field(default_factory=dict)


class LoadRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")
    limit: int = Field(default=5, ge=1, description="Number of products to warm the cache with")


class ClearResponse(BaseModel):
    success: bool
    message: str
    deleted: int = 0


class SeedResponse(BaseModel):
    loaded: int
    skipped: int
    message: str


class HealthResponse(BaseModel):
    service: str
    database: str
    cache: str
    version: str
