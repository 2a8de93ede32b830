"""
FastAPI Application Factory
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from annuaire import __version__
from annuaire.api.middleware import LoggingMiddleware
from annuaire.api.routes import health, search
from annuaire.config import Settings, get_settings
from annuaire.errors import AnnuaireError, SearchValidationError

logger = structlog.get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Create FastAPI application.
    
    Args:
        settings: Settings to use; loaded from the environment when omitted,
            which fails if ESANTE_API_KEY is not set
        http_client: Shared upstream client; created in the lifespan when omitted
        
    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()
    
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        app.state.http = http_client or httpx.AsyncClient(timeout=settings.registry.timeout)
        logger.info(
            "Annuaire proxy starting",
            version=__version__,
            env=settings.app.env,
            registry=settings.registry.normalized_base_url,
        )
        try:
            yield
        finally:
            logger.info("Annuaire proxy shutting down")
            await app.state.http.aclose()
    
    app = FastAPI(
        title="Annuaire Santé Proxy",
        description="Search proxy over the Annuaire Santé FHIR registry",
        version=__version__,
        debug=settings.app.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.allow_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.add_middleware(LoggingMiddleware)
    
    @app.exception_handler(AnnuaireError)
    async def annuaire_error_handler(request: Request, exc: AnnuaireError):
        logger.warning(
            "Request failed",
            path=request.url.path,
            kind=exc.kind,
            error=exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
    
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed query parameters share the validation_error contract."""
        problems = [
            f"{error['loc'][-1]}: {error['msg']}" if error.get("loc") else error["msg"]
            for error in exc.errors()
        ]
        error = SearchValidationError("Invalid parameter " + "; ".join(problems))
        return await annuaire_error_handler(request, error)
    
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler for unhandled errors."""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
                "detail": str(exc) if settings.app.debug else None,
            },
        )
    
    app.include_router(health.router, tags=["health"])
    app.include_router(search.router, prefix="/api", tags=["search"])
    
    return app
