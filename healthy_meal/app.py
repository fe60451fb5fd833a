import logging
import time
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import auth, openrouter, recipes, variants
from .core.config import Config
from .core.errors import ApiError
from .core.middleware import api_error_handler, global_exception_handler, log_requests
from .services.supabase_service import check_connection, get_client

logger = logging.getLogger(__name__)

# Initialize FastAPI
app = FastAPI(title="Healthy Meal API")

# CORS setup
ALLOWED_ORIGINS = Config.allowed_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

@app.middleware("http")
async def _log_requests(request, call_next):
    return await log_requests(request, call_next)

@app.exception_handler(ApiError)
async def _api_error_handler(request, exc):
    return await api_error_handler(request, exc)

@app.exception_handler(Exception)
async def _global_exception_handler(request, exc):
    return await global_exception_handler(request, exc)


app.include_router(recipes.router)
app.include_router(variants.router)
app.include_router(openrouter.router)
app.include_router(auth.router)


@app.get("/health")
async def health_check():
    """Basic health and dependency checks for the API."""
    health_start_time = time.time()

    try:
        # Check configuration and Supabase connection
        Config.validate()
        check_connection(get_client())

        health_duration = time.time() - health_start_time

        return {
            "status": "healthy",
            "service": "healthy-meal-api",
            "timestamp": datetime.now().isoformat(),
            "response_time_ms": round(health_duration * 1000, 2)
        }
    except Exception as e:
        health_duration = time.time() - health_start_time
        logger.error(f"Health check failed: {str(e)} - Duration: {health_duration:.1f}s")

        return {
            "status": "unhealthy",
            "service": "healthy-meal-api",
            "timestamp": datetime.now().isoformat(),
            "error": str(e),
            "response_time_ms": round(health_duration * 1000, 2)
        }


@app.get("/")
async def root():
    """Return basic API information."""

    return {
        "service": "Healthy Meal API",
        "version": "1.0",
        "endpoints": {
            "recipes": "/api/recipes",
            "ai_generation": "/api/recipes/ai-generation",
            "variants": "/api/recipes/{recipe_id}/variants",
            "generate_variant": "/api/openrouter/generate-variant",
            "auth": "/api/auth",
            "health": "/health"
        },
        "timestamp": datetime.now().isoformat(),
        "description": "Recipe management API with AI recipe generation via OpenRouter"
    }
