"""
FastAPI application entry point.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from linklocker.config import get_settings
from linklocker.errors import NotFound, StoreUnavailable
from linklocker.routes import router

logger = logging.getLogger(__name__)


async def _not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _store_unavailable_handler(
    request: Request, exc: StoreUnavailable
) -> JSONResponse:
    logger.error("Store unavailable handling %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Document store unavailable"})


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    app = FastAPI(title="LinkLocker API", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)
    app.add_exception_handler(NotFound, _not_found_handler)
    app.add_exception_handler(StoreUnavailable, _store_unavailable_handler)
    return app


app = create_app()
