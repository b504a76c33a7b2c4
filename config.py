import logging
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _csv(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


@dataclass
class Config:
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "root"
    DB_PASSWORD: str = ""
    DB_NAME: str = "ProjectFlow"
    DB_SSL: bool = False
    DATABASE_URL: str = ""
    STORAGE_BACKEND: str = "memory"  # "memory" oder "database"
    SEED_DATABASE: bool = False
    LOG_LEVEL: str = "INFO"
    RATE_LIMIT: str = "120/minute"
    RATE_LIMIT_ENABLED: bool = True
    ALLOWED_HOSTS: List[str] = field(default_factory=lambda: ["localhost", "127.0.0.1", "0.0.0.0", "testserver"])
    CORS_ORIGINS: List[str] = field(default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"])


def load_config() -> Config:
    """Read the environment (and a .env file, if present) into a Config."""
    config = Config(
        DB_HOST=os.getenv("DB_HOST", "localhost"),
        DB_PORT=int(os.getenv("DB_PORT", "3306")),
        DB_USER=os.getenv("DB_USER", "root"),
        DB_PASSWORD=os.getenv("DB_PASSWORD", ""),
        DB_NAME=os.getenv("DB_NAME", "ProjectFlow"),
        DB_SSL=_flag("DB_SSL", "false"),
        DATABASE_URL=os.getenv("DATABASE_URL", ""),
        STORAGE_BACKEND=os.getenv("STORAGE_BACKEND", "memory").lower(),
        SEED_DATABASE=_flag("SEED_DATABASE", "false"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        RATE_LIMIT=os.getenv("RATE_LIMIT", "120/minute"),
        RATE_LIMIT_ENABLED=_flag("RATE_LIMIT_ENABLED", "true"),
        ALLOWED_HOSTS=_csv("ALLOWED_HOSTS", "localhost,127.0.0.1,0.0.0.0,testserver"),
        CORS_ORIGINS=_csv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"),
    )
    if config.STORAGE_BACKEND not in ("memory", "database"):
        raise ValueError(f"Unknown STORAGE_BACKEND: {config.STORAGE_BACKEND!r}")
    return config


def database_url(config: Config) -> str:
    if config.DATABASE_URL:
        return config.DATABASE_URL
    if not config.DB_PASSWORD:
        logger.warning("DB_PASSWORD not set. Using empty password for local development.")
    return (
        f"mysql+pymysql://{config.DB_USER}:{config.DB_PASSWORD}"
        f"@{config.DB_HOST}:{config.DB_PORT}/{config.DB_NAME}"
    )


def connect_args(config: Config) -> dict:
    if config.DB_SSL:
        # TLS ohne Zertifikatsprüfung
        return {"ssl": {"check_hostname": False}}
    return {}
