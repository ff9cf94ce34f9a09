from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlparse

from dotenv import load_dotenv

DEFAULT_MONGODB_URI = "mongodb://localhost:27017/agri-dashboard"
DEFAULT_MONGODB_DB = "agri-dashboard"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def load_env_file(path: str | None = None) -> bool:
    """Load a `.env` file into the process environment without overriding set keys."""
    return load_dotenv(dotenv_path=path, override=False)


def _env_int(env: Mapping[str, str], name: str, *, default: int, minimum: int = 0) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, value)


def _env_bool(env: Mapping[str, str], name: str, *, default: bool) -> bool:
    raw = env.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def _split_csv(raw: str) -> list[str]:
    return [x.strip() for x in raw.split(",") if x.strip()]


def database_name_from_uri(uri: str, default: str = DEFAULT_MONGODB_DB) -> str:
    path = urlparse(uri).path.strip("/")
    return path.split("/", maxsplit=1)[0] if path else default


@dataclass(frozen=True)
class AppSettings:
    app_name: str
    app_version: str
    app_env: str
    port: int
    store_backend: str
    mongodb_uri: str
    mongodb_db: str
    cors_origins: list[str]
    cors_public: bool
    upload_dir: str
    log_level: str
    bcrypt_rounds: int = 12
    low_stock_threshold: int = 10

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppSettings":
        env = os.environ if environ is None else environ
        app_env = env.get("APP_ENV", "development").strip().lower() or "development"
        mongodb_uri = env.get("MONGODB_URI", "").strip() or DEFAULT_MONGODB_URI
        default_level = "DEBUG" if app_env == "development" else "WARNING"
        return cls(
            app_name=env.get("APP_NAME", "").strip() or "Agri Dashboard Backend",
            app_version=env.get("APP_VERSION", "").strip() or "1.0.0",
            app_env=app_env,
            port=_env_int(env, "PORT", default=5000, minimum=1),
            store_backend=env.get("STORE_BACKEND", "memory").strip().lower() or "memory",
            mongodb_uri=mongodb_uri,
            mongodb_db=env.get("MONGODB_DB", "").strip() or database_name_from_uri(mongodb_uri),
            cors_origins=_split_csv(env.get("CORS_ORIGIN", "http://localhost:3000")),
            cors_public=_env_bool(env, "CORS_PUBLIC", default=False),
            upload_dir=env.get("UPLOAD_DIR", "").strip() or "uploads",
            log_level=(env.get("LOG_LEVEL", "").strip() or default_level).upper(),
            bcrypt_rounds=_env_int(env, "BCRYPT_ROUNDS", default=12, minimum=4),
            low_stock_threshold=_env_int(env, "LOW_STOCK_THRESHOLD", default=10, minimum=0),
        )


def configure_logging(settings: AppSettings) -> None:
    root = logging.getLogger()
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        level = logging.INFO
    root.setLevel(level)
    if any(getattr(h, "_agri_handler", False) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._agri_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
