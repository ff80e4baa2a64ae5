"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from food_scan_api.api.dependencies import get_fusion_engine, get_quota_tracker
from food_scan_api.api.routes import food_scan, quota
from food_scan_api.core.config import get_settings
from food_scan_api.core.exceptions import APIError
from food_scan_api.services.llm import get_llm_info


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    print(f"🚀 Starting {settings.app_name} v{settings.api_version}")
    print(f"👁️  Vision (Clarifai): {'configured' if settings.is_vision_configured else 'NOT configured'}")
    print(f"🥗 USDA: {'configured' if settings.is_usda_configured else 'NOT configured'}")
    print(f"🥗 Nutritionix: {'configured' if settings.is_nutritionix_configured else 'NOT configured'}")
    print(f"🤖 LLM: {settings.llm_provider.value} ({'configured' if settings.is_llm_configured else 'NOT configured'})")

    yield

    # Shutdown
    print("👋 Shutting down...")
    if get_fusion_engine.cache_info().currsize:
        await get_fusion_engine().close()
        print("✅ Provider clients closed")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.api_version,
        description="Food photo recognition with nutrition lookup and AI analysis",
        lifespan=lifespan,
        debug=settings.debug,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        """Handle custom API errors."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.message,
                "error_code": exc.error_code,
                "remediation": exc.remediation,
                "details": exc.details,
            },
        )

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.api_version,
            "llm": get_llm_info(settings),
            "providers": {
                "clarifai": settings.is_vision_configured,
                "usda": settings.is_usda_configured,
                "nutritionix": settings.is_nutritionix_configured,
            },
            "quota": get_quota_tracker().status(),
        }

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": settings.app_name,
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    # Include routers
    app.include_router(food_scan.router, prefix="/food", tags=["Food Scan"])
    app.include_router(quota.router, prefix="/quota", tags=["Quota"])

    return app


# Create app instance
app = create_app()
