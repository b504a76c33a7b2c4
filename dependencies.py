import logging
from contextlib import contextmanager

from fastapi import HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from config import Config
from storage import Storage

logger = logging.getLogger(__name__)

# Limit für alle anlegenden Endpunkte (POST), gesetzt von configure_rate_limit()
_write_rate_limit = Config.RATE_LIMIT


# --- Storage Dependency ---
def get_storage(request: Request) -> Storage:
    """Return the storage handle the application was built with."""
    return request.app.state.storage


# --- Rate Limiter ---
limiter = Limiter(key_func=get_remote_address)


def write_rate_limit() -> str:
    """Current limit for POST endpoints; slowapi evaluates it on every request."""
    return _write_rate_limit


def configure_rate_limit(config: Config) -> None:
    global _write_rate_limit
    _write_rate_limit = config.RATE_LIMIT
    limiter.enabled = config.RATE_LIMIT_ENABLED


@contextmanager
def backend_call(message: str):
    """Turn any storage failure into a generic 500 with ``message`` as detail."""
    try:
        yield
    except Exception:
        logger.exception(message)
        raise HTTPException(status_code=500, detail=message)
