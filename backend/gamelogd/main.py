from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Optional
import time
import logging
import asyncio

from gamelogd.config import Settings, settings as default_settings
from gamelogd.preferences.errors import GamelogError, ConfigError
from gamelogd.web.routes import auth, preferences, recommend, notes, admin
from gamelogd.web.services.container import Services, build_services

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 5


def mask_url(url: Optional[str]) -> str:
    """Mask the password in a store URL for logging."""
    if not url:
        return "in-memory"
    if '@' in url:
        parts = url.split('@')
        user_pass = parts[0].split('//')[1] if '//' in parts[0] else parts[0]
        if ':' in user_pass:
            user = user_pass.split(':')[0]
            return url.replace(user_pass, f"{user}:***")
        return url.replace(user_pass, "***")
    return url


def _validation_message(exc: RequestValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "Invalid request: " + "; ".join(problems)


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        settings: Settings (default: read from the environment at import)
        services: Prebuilt services (optional, built from settings if None)
    """
    settings = settings or default_settings
    services = services or build_services(settings)

    app = FastAPI(
        title="gamelogd API",
        description="Game ratings, personal libraries and AI recommendations",
        version="1.0.0"
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def timeout_middleware(request: Request, call_next):
        """
        Abort requests after REQUEST_TIMEOUT_SECONDS with a 504 and log slow ones.
        """
        start_time = time.time()

        try:
            response = await asyncio.wait_for(call_next(request), timeout=settings.request_timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"Request timeout: {request.method} {request.url.path}")
            return JSONResponse(
                status_code=504,
                content={"detail": "Request timeout. Please try again."}
            )

        process_time = time.time() - start_time
        if process_time > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} "
                f"took {process_time:.2f}s"
            )
        return response

    @app.exception_handler(GamelogError)
    async def gamelog_error_handler(request: Request, exc: GamelogError):
        if isinstance(exc, ConfigError) or exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        # Missing or malformed fields are a 400, not FastAPI's 422
        return JSONResponse(status_code=400, content={"detail": _validation_message(exc)})

    app.include_router(auth.router)
    app.include_router(preferences.router)
    app.include_router(recommend.router)
    app.include_router(notes.router)
    app.include_router(admin.router)

    @app.on_event("startup")
    async def startup_event():
        """Print where the API and its store live."""
        print("\n" + "=" * 60)
        print("gamelogd API started")
        print("=" * 60)
        print(f"Store:           {mask_url(settings.redis_url)}")
        print(f"Concurrency:     {services.strategy.name}")
        print(f"Recommendations: {'enabled' if settings.openai_api_key else 'disabled (no OPENAI_API_KEY)'}")
        print("=" * 60 + "\n")

    @app.get("/")
    async def root():
        """Root endpoint - API information."""
        return {
            "name": "gamelogd API",
            "version": "1.0.0",
            "docs": "/docs",
            "redoc": "/redoc"
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "service": "gamelogd"}

    return app


app = create_app()
