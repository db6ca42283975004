"""FastAPI surface for the electives reference-data cache."""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from elective_cache.catalog.reference import RESOURCES, ReferenceCatalog
from elective_cache.catalog.refresh import ForceRefreshFlags
from elective_cache.config.settings import settings
from elective_cache.core.cache import TTLCacheStore
from elective_cache.core.errors import RemoteQueryError
from elective_cache.core.logging import get_logger, setup_logging
from elective_cache.core.metrics import metrics
from elective_cache.core.middleware import ObservabilityMiddleware
from elective_cache.core.schemas import (
    ChangeEvent,
    InvalidationResult,
    ReferenceResponse,
    RefreshRequestResult,
)
from elective_cache.core.storage import build_storage
from elective_cache.realtime.invalidation import RealtimeInvalidator
from elective_cache.realtime.stream import InProcessChangeStream
from elective_cache.remote.source import InMemoryDataSource, PostgrestDataSource, RemoteDataSource

setup_logging(getattr(logging, settings.log_level.upper(), logging.INFO))
logger = get_logger(__name__)


def default_source() -> RemoteDataSource:
    remote = settings.remote
    if remote.supabase_url:
        return PostgrestDataSource(remote.supabase_url, remote.supabase_anon_key, timeout=remote.timeout_seconds)
    logger.warning("SUPABASE_URL not set, serving from an empty in-memory source")
    return InMemoryDataSource()


def default_store() -> TTLCacheStore:
    cache = settings.cache
    storage = build_storage(cache.backend, cache.db_path, cache.quota_bytes)
    return TTLCacheStore(storage, strict_generations=cache.strict_generations)


def create_app(
    store: Optional[TTLCacheStore] = None,
    source: Optional[RemoteDataSource] = None,
    stream: Optional[InProcessChangeStream] = None,
) -> FastAPI:
    store = store if store is not None else default_store()
    source = source if source is not None else default_source()
    stream = stream if stream is not None else InProcessChangeStream()
    flags = ForceRefreshFlags()
    catalog = ReferenceCatalog(store, source, settings.cache, flags)
    invalidator = RealtimeInvalidator(store, stream)
    invalidator.start()

    app = FastAPI(title="Electives Reference Cache", version="0.1.0")
    app.add_middleware(ObservabilityMiddleware)
    app.state.store = store
    app.state.catalog = catalog
    app.state.stream = stream
    app.state.invalidator = invalidator
    app.state.flags = flags

    @app.get("/health")
    async def health() -> JSONResponse:
        """Health check endpoint."""
        return JSONResponse(
            {
                "status": "ok",
                "service": "elective-cache",
                "realtime": invalidator.running,
            }
        )

    @app.get("/metrics")
    async def get_metrics() -> JSONResponse:
        """Metrics endpoint."""
        return JSONResponse(metrics.snapshot())

    @app.get("/api/reference/{resource}", response_model=ReferenceResponse)
    async def read_reference(resource: str, request: Request) -> ReferenceResponse:
        """Read one reference resource through the cache."""
        if resource not in RESOURCES:
            raise HTTPException(status_code=404, detail=f"unknown resource: {resource}")
        loader_name, accepted, required = RESOURCES[resource]
        scope = {name: request.query_params[name] for name in accepted if name in request.query_params}
        missing = [name for name in required if name not in scope]
        if missing:
            raise HTTPException(status_code=400, detail=f"missing query parameter(s): {', '.join(missing)}")
        try:
            loaded = await getattr(catalog, loader_name)(**scope)
        except RemoteQueryError as e:
            metrics.record_remote_error()
            logger.error(f"remote query failed for {resource}: {e}")
            raise HTTPException(status_code=502, detail=str(e)) from e
        return ReferenceResponse(resource=resource, key=loaded.key, data=loaded.data, cache_hit=loaded.cache_hit)

    @app.post("/api/realtime/events")
    async def realtime_event(event: ChangeEvent) -> JSONResponse:
        """Accept a change notification (or database webhook body) and fan it out."""
        delivered = stream.publish(event)
        await stream.drain()
        return JSONResponse({"accepted": True, "delivered": delivered})

    @app.delete("/api/cache/{key}", response_model=InvalidationResult)
    async def invalidate_key(key: str, pattern: bool = False) -> InvalidationResult:
        """Drop one key, or every key matching a glob when ``pattern=true``."""
        if pattern:
            matched = store.invalidate_matching(key)
            return InvalidationResult(removed=len(matched), keys=matched)
        present = store.has(key)
        store.invalidate(key)
        return InvalidationResult(removed=int(present), keys=[key] if present else [])

    @app.post("/api/refresh/{domain}", response_model=RefreshRequestResult)
    async def request_refresh(domain: str) -> RefreshRequestResult:
        """Make the next read of ``domain`` skip the cache once."""
        flags.set(domain)
        return RefreshRequestResult(domain=domain)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    logger.info("Starting electives reference cache...")
    uvicorn.run(app, host="0.0.0.0", port=8000)
