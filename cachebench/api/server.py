"""
FastAPI server for the fetch-strategy benchmark.

Usage:
    uvicorn cachebench.api.server:app --reload --port 8000
    # or
    python -m cachebench.api.server
"""
import asyncio
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cachebench import __version__
from cachebench.api.models import (
    CacheInfoResponse,
    ClearResponse,
    FetchRequestModel,
    FetchResponseModel,
    HealthResponse,
    LoadRequest,
    ReportResponse,
    ReportSummaryResponse,
    SeedResponse,
)
from cachebench.core.errors import CacheUnavailable, InvalidRequest, SeedError, StoreUnavailable
from cachebench.core.models import FetchResponse
from cachebench.core.requests import parse_fetch_request
from cachebench.core.services import CacheBenchServices, build_services
from cachebench.core.strategies import FetchStrategy
from cachebench.data.seed import seed_products
from cachebench.utils.logger import get_logger

logger = get_logger("api.server")


def create_app(services: Optional[CacheBenchServices] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Pre-built services (tests inject doubles here). When omitted
            they are built from config at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.services is None
        if owned:
            logger.info("Server starting up - building services...")
            app.state.services = build_services()
        yield
        if owned:
            await app.state.services.close()
            logger.info("Services closed")

    app = FastAPI(
        title="cachebench API",
        description="Compare store-only, cache-only and hybrid cache-aside fetching",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    # Enable CORS for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_routes(app)
    return app


def get_services(request: Request) -> CacheBenchServices:
    services = request.app.state.services
    if services is None:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return services


def _envelope(response: FetchResponse, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=response.to_dict())


def _register_routes(app: FastAPI) -> None:

    @app.exception_handler(CacheUnavailable)
    async def cache_unavailable_handler(request: Request, exc: CacheUnavailable):
        logger.error("Cache unavailable during %s: %s", request.url.path, exc.message)
        return JSONResponse(status_code=503, content={"detail": exc.message, "type": "CacheUnavailable"})

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
        logger.error("Store unavailable during %s: %s", request.url.path, exc.message)
        return JSONResponse(status_code=503, content={"detail": exc.message, "type": "StoreUnavailable"})

    @app.get("/")
    def root():
        """Root endpoint - basic health check."""
        return {
            "service": "cachebench",
            "version": __version__,
            "status": "operational",
            "strategies": [s.value for s in FetchStrategy],
        }

    @app.get("/health", response_model=HealthResponse)
    async def health_check(services: CacheBenchServices = Depends(get_services)):
        """Store and cache connectivity."""
        database_ok = await services.store.ping()
        cache_ok = await services.cache.ping()
        return HealthResponse(
            service="healthy" if database_ok and cache_ok else "degraded",
            database="healthy" if database_ok else "unhealthy",
            cache="healthy" if cache_ok else "unhealthy",
            version=__version__,
        )

    @app.post("/fetch", response_model=FetchResponseModel)
    async def fetch(body: FetchRequestModel, services: CacheBenchServices = Depends(get_services)):
        """
        Run one fetch with the requested strategy.

        Status codes: 400 invalid request, 503 store unavailable, 504 timeout.
        The body is always the response envelope.
        """
        payload = body.model_dump(exclude_none=True)
        try:
            fetch_request = parse_fetch_request(payload, max_limit=services.config.max_limit)
        except InvalidRequest as e:
            requested = None
            try:
                requested = FetchStrategy.parse(payload.get("strategy", payload.get("mode")))
            except ValueError:
                pass
            return _envelope(FetchResponse.failure(e.message, requested), status_code=400)

        call = services.coordinator.execute(fetch_request.strategy, fetch_request.limit)
        timeout = services.config.request_timeout_seconds
        try:
            response = await asyncio.wait_for(call, timeout=timeout) if timeout else await call
        except asyncio.TimeoutError:
            # In-flight I/O is abandoned; a partially written window is accepted
            logger.warning("%s fetch timed out after %ss", fetch_request.strategy.value, timeout)
            return _envelope(
                FetchResponse.failure("Request timed out", fetch_request.strategy), status_code=504
            )

        if response.succeeded:
            return _envelope(response)
        return _envelope(response, status_code=503)

    @app.get("/report", response_model=ReportResponse)
    async def report(services: CacheBenchServices = Depends(get_services)):
        """Raw timing histories per strategy, oldest first."""
        histories = await services.recorder.report()
        return {
            name: [{"timestamp": e.timestamp, "total": e.total} for e in entries]
            for name, entries in histories.items()
        }

    @app.get("/report/summary", response_model=ReportSummaryResponse)
    async def report_summary(services: CacheBenchServices = Depends(get_services)):
        """Mean / min / max per strategy, ranked by mean."""
        ranking = await services.aggregator.aggregate()
        return {"ranking": [stats.to_dict() for stats in ranking]}

    @app.get("/cache/info", response_model=CacheInfoResponse)
    async def cache_info(services: CacheBenchServices = Depends(get_services)):
        """Window key details and Redis server info."""
        window = await services.cache.key_info()
        server = await services.cache.server_info()
        return {"window": window, "server": server}

    @app.post("/cache/load", response_model=FetchResponseModel)
    async def cache_load(body: LoadRequest, services: CacheBenchServices = Depends(get_services)):
        """Warm the window with the cache strategy; not recorded in the timing history."""
        response = await services.coordinator.execute(
            FetchStrategy.CACHE, body.limit, record_timing=False
        )
        return _envelope(response, status_code=200 if response.succeeded else 503)

    @app.delete("/cache/products", response_model=ClearResponse)
    async def clear_window(services: CacheBenchServices = Depends(get_services)):
        """Delete the product window key."""
        await services.cache.clear()
        return ClearResponse(success=True, message=f"Cleared '{services.cache.key}'")

    @app.delete("/cache", response_model=ClearResponse)
    async def clear_cache(services: CacheBenchServices = Depends(get_services)):
        """Delete every key in the cache database (window and timing histories)."""
        deleted = await services.cache.clear_all("*")
        return ClearResponse(success=True, message="Cache cleared successfully", deleted=deleted)

    @app.post("/seed", response_model=SeedResponse)
    async def seed(services: CacheBenchServices = Depends(get_services)):
        """Load products from the remote source into an empty store."""
        await services.store.create_schema()
        try:
            result = await seed_products(services.store, services.config.seed_source_url)
        except SeedError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return SeedResponse(loaded=result.loaded, skipped=result.skipped, message=result.message)


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cachebench.api.server:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
