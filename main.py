import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from config import Config, load_config
from database import engine_from_config, init_db, make_session_factory
from dependencies import configure_rate_limit, limiter
from storage import DatabaseStorage, MemStorage, Storage

# Routers
from routers.boards import router as boards_router
from routers.tasks import router as tasks_router
from routers.users import router as users_router
from routers.time_entries import router as time_entries_router

logger = logging.getLogger(__name__)

# Pfad-Präfix -> Bezeichnung in der 400-Fehlermeldung
VALIDATION_KINDS = (
    ("/api/time-entries", "time entry"),
    ("/api/boards", "board"),
    ("/api/tasks", "task"),
    ("/api/users", "user"),
)


def build_storage(config: Config) -> Storage:
    """Pick the storage backend named by STORAGE_BACKEND."""
    if config.STORAGE_BACKEND == "memory":
        logger.info("Using in-memory storage (seeded with sample data)")
        return MemStorage()

    engine = engine_from_config(config)
    init_db(engine)
    storage = DatabaseStorage(make_session_factory(engine))
    if config.SEED_DATABASE and storage.is_empty():
        storage.seed_fixtures()
    return storage


# Custom Rate Limit Handler
def custom_rate_limit_handler(request: Request, exc: RateLimitExceeded):
    limit_info = getattr(exc, "detail", None) or "rate limit"
    return JSONResponse(
        status_code=429,
        content={"detail": f"Too many requests ({limit_info}). Please slow down."},
    )


def validation_error_handler(request: Request, exc: RequestValidationError):
    kind = next((name for prefix, name in VALIDATION_KINDS if request.url.path.startswith(prefix)), "request")
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content={"message": f"Invalid {kind} data", "errors": jsonable_encoder(exc.errors())},
    )


# Custom Middleware for Security Headers
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["Content-Security-Policy"] = "default-src 'self'; script-src 'self' 'unsafe-inline' 'unsafe-eval'; style-src 'self' 'unsafe-inline';"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        return response


def create_app(storage: Optional[Storage] = None, config: Optional[Config] = None) -> FastAPI:
    """
    Build the API application.

    ``storage`` is injected into every request handler via ``get_storage``;
    when omitted it is built from the configuration (memory or database).
    """
    config = config or load_config()
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="ProjectFlow")
    app.state.storage = storage if storage is not None else build_storage(config)

    # Rate Limiter Setup (Globally available via app.state.limiter)
    configure_rate_limit(config)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, custom_rate_limit_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=config.ALLOWED_HOSTS)

    # Include Routers
    app.include_router(boards_router)
    app.include_router(tasks_router)
    app.include_router(users_router)
    app.include_router(time_entries_router)

    # Mount Static Files (Frontend)
    frontend_build_path = os.path.join(os.path.dirname(__file__), "frontend", "build")
    if os.path.exists(frontend_build_path):
        app.mount("/", StaticFiles(directory=frontend_build_path, html=True), name="static")
    else:
        logger.debug("Frontend build path not found at %s", frontend_build_path)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
