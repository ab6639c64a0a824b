"""
Runtime configuration read from the environment (and a local .env file).
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

DEFAULT_BUILD_DIR = Path(__file__).resolve().parent.parent / "frontend" / "build"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class Settings:
    port: int = 5000
    host: str = "0.0.0.0"
    environment: str = "development"
    frontend_build_dir: Path = DEFAULT_BUILD_DIR
    cors_origins: Tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from ``environ`` (defaults to ``os.environ`` after loading .env)."""
    if environ is None:
        load_dotenv()
        environ = os.environ
    origins = tuple(
        o.strip() for o in environ.get("CORS_ORIGINS", "*").split(",") if o.strip()
    )
    build_dir = environ.get("FRONTEND_BUILD_DIR")
    return Settings(
        port=int(environ.get("PORT", 5000)),
        host=environ.get("HOST", "0.0.0.0"),
        environment=(environ.get("APP_ENV") or environ.get("NODE_ENV") or "development").strip().lower(),
        frontend_build_dir=Path(build_dir) if build_dir else DEFAULT_BUILD_DIR,
        cors_origins=origins or ("*",),
        log_level=environ.get("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
