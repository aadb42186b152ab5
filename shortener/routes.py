"""FastAPI route definitions for the short-code service.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /shorten
        ├─ ShortenRequest (request body)
        └─ ShortenResponse (200) or 500

    GET  /lookup?short_code=...
        └─ original URL as text/plain (200) or 404 / 500

    GET  /:short_code
        └─ 307 Redirect or 404 / 500

How to Use
===========
**Step 1 — Include the router**::
    from shortener.routes import router
    app.include_router(router)

**Step 2 — Call the endpoints**::
    POST http://localhost:3000/shorten
    {"original_url": "https://example.com"}

    GET http://localhost:3000/lookup?short_code=aB3x
    GET http://localhost:3000/aB3x

Key Behaviours
===============
- Unknown codes answer 404 "Short URL not found", distinct from 500.
- Allocation failures answer a generic 500; the cause is only logged.
- 307 redirects preserve the HTTP method.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse, RedirectResponse

from shortener.allocator import CodeAllocator
from shortener.dependencies import RequestContext, get_allocator, get_request_context, get_resolver
from shortener.enums import HealthStatus
from shortener.errors import CapacityExhaustedError, InternalError, NotFoundError
from shortener.resolver import Resolver
from shortener.schemas import HealthResponse, ShortenRequest, ShortenResponse

__all__ = ["router"]

NOT_FOUND_DETAIL = "Short URL not found"
INTERNAL_ERROR_DETAIL = "Internal server error"

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.DISABLED

    try:
        await ctx.registry.ping()
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    if ctx.cache is not None:
        try:
            await ctx.cache.ping()
            cache_status = HealthStatus.HEALTHY
        except Exception as e:
            ctx.logger.error(f"Cache health check failed: {e}")
            cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is not HealthStatus.UNHEALTHY
        else HealthStatus.UNHEALTHY
    )
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@router.post("/shorten", response_model=ShortenResponse, tags=["urls"])
async def shorten_url(
    payload: ShortenRequest,
    ctx: RequestContext = Depends(get_request_context),
    allocator: CodeAllocator = Depends(get_allocator),
) -> ShortenResponse:
    try:
        short_code = await allocator.allocate(payload.original_url)
    except (InternalError, CapacityExhaustedError) as exc:
        ctx.logger.warning(
            f"URL shortening failed: {exc}",
            extra={"operation": "shorten", "error": str(exc), "duration_ms": ctx.get_duration()},
        )
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_DETAIL) from exc

    ctx.logger.info(
        f"URL shortened: {short_code}",
        extra={"operation": "shorten", "short_code": short_code, "duration_ms": ctx.get_duration()},
    )
    return ShortenResponse(
        short_code=short_code,
        short_url=f"{ctx.settings.public_base_url}/{short_code}",
    )


@router.get("/lookup", response_class=PlainTextResponse, tags=["urls"])
async def lookup_url(
    short_code: str = Query(..., min_length=1),
    ctx: RequestContext = Depends(get_request_context),
    resolver: Resolver = Depends(get_resolver),
) -> PlainTextResponse:
    original_url = await _resolve_or_raise(short_code, ctx, resolver)
    return PlainTextResponse(original_url)


@router.get("/{short_code}", tags=["redirect"])
async def redirect_to_url(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    resolver: Resolver = Depends(get_resolver),
) -> RedirectResponse:
    original_url = await _resolve_or_raise(short_code, ctx, resolver)
    ctx.logger.debug(f"Redirect: {short_code} -> {original_url}")
    return RedirectResponse(url=original_url, status_code=307)


async def _resolve_or_raise(short_code: str, ctx: RequestContext, resolver: Resolver) -> str:
    try:
        return await resolver.resolve(short_code)
    except NotFoundError as exc:
        ctx.logger.info(
            f"Short code not found: {short_code}",
            extra={"operation": "resolve", "short_code": short_code, "error": "not_found"},
        )
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL) from exc
    except InternalError as exc:
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR_DETAIL) from exc
