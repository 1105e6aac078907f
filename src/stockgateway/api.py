"""
HTTP surface for the gateway.

Thin FastAPI layer: extracts the path parameters, calls the DataGateway and
maps upstream failures to gateway status codes. Handlers are synchronous so
FastAPI runs them on its worker thread pool.

Endpoints:
    GET    /api/stocks/{symbol}/{granularity}
    DELETE /api/cache
    GET    /health
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict

from fastapi import APIRouter, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from . import __version__
from .config import GatewaySettings
from .data.gateway import DataGateway
from .data.granularity import Granularity
from .data.upstream import AlphaVantageFetcher
from .exceptions import FetchError, UpstreamError, UpstreamUnavailable

logger = logging.getLogger(__name__)

router = APIRouter()


def get_gateway(request: Request) -> DataGateway:
    return request.app.state.gateway


@router.get("/api/stocks/{symbol}/{granularity}")
def get_series(symbol: str, granularity: str, request: Request) -> Response:
    """Raw time-series payload for one symbol and granularity."""
    try:
        resolved = Granularity.parse(granularity)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    payload = get_gateway(request).fetch(resolved, symbol)
    return Response(content=payload, media_type="application/json")


@router.delete("/api/cache")
def clear_cache(request: Request) -> Dict[str, Any]:
    """Drop every cached series."""
    removed = get_gateway(request).clear_cache()
    return {"cleared": removed}


@router.get("/health")
def health_check(request: Request) -> Dict[str, Any]:
    """Basic health status with the advisory cache size."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "cache_entries": get_gateway(request).cache_size(),
    }


def _error_body(exc: FetchError) -> Dict[str, Any]:
    return {"error": exc.error_code, "message": exc.message, "details": exc.details}


async def upstream_unavailable_handler(request: Request, exc: UpstreamUnavailable) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} -> 504: {exc.message}")
    return JSONResponse(status_code=status.HTTP_504_GATEWAY_TIMEOUT, content=_error_body(exc))


async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} -> 502: {exc.message}")
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=_error_body(exc))


def create_app(
    gateway: DataGateway | None = None,
    settings: GatewaySettings | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        gateway: Gateway to serve. Built from ``settings`` when omitted.
        settings: Gateway settings. Defaults apply when omitted.

    Returns:
        Configured FastAPI app with the gateway on ``app.state.gateway``.
    """
    settings = settings or GatewaySettings()
    if gateway is None:
        gateway = DataGateway(
            AlphaVantageFetcher(settings.upstream),
            cache_config=settings.cache,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        app.state.gateway.close()

    app = FastAPI(title="Stock Data Gateway", version=__version__, lifespan=lifespan)
    app.state.gateway = gateway
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_methods=["GET", "DELETE"],
        allow_headers=["*"],
    )
    app.add_exception_handler(UpstreamUnavailable, upstream_unavailable_handler)
    app.add_exception_handler(UpstreamError, upstream_error_handler)
    app.include_router(router)

    return app
