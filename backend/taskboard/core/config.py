# taskboard/core/config.py

from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Tuple
import warnings

from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_SECRET_KEY = "!!!GENERATE_A_STRONG_SECRET_KEY_32_BYTES_HEX!!!"


def find_dotenv_path(filename: str = ".env", usecwd: bool = False) -> str | None:
    """Walks up from this file (or the CWD) looking for `filename`."""
    start_dir = Path.cwd() if usecwd else Path(__file__).resolve().parent
    current_dir = start_dir
    for _ in range(10):
        env_path = current_dir / filename
        if env_path.is_file():
            logger.debug(f"Found {filename} file at: {env_path}")
            return str(env_path)
        parent_dir = current_dir.parent
        if parent_dir == current_dir:
            break
        current_dir = parent_dir
    if not usecwd:
        env_path_cwd = Path.cwd() / filename
        if env_path_cwd.is_file():
            logger.debug(f"Found {filename} file at CWD: {env_path_cwd}")
            return str(env_path_cwd)
    return None


def find_env_files() -> Tuple[str, ...] | None:
    """Existing .env files, in load order (.env.local overrides .env). None when there are none."""
    found = tuple(p for p in (find_dotenv_path(".env"), find_dotenv_path(".env.local")) if p)
    return found or None


class Settings(BaseSettings):
    PROJECT_NAME: str = "Taskboard API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Storage
    STORE_BACKEND: Literal["mongo", "memory"] = "mongo"
    MONGODB_URI: str = "mongodb://localhost:27017/taskboard"
    MONGODB_DB_NAME: str = Field(default="taskboard", description="Used when the URI carries no database name")

    # Security (token verification only; issuing tokens belongs to the identity service)
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # HTTP
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Listing
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    model_config = SettingsConfigDict(
        # .env first, then .env.local overrides
        env_file=find_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


@lru_cache()
def get_settings() -> Settings:
    """Loads and validates the application settings."""
    logger.info("Loading application settings...")
    env_files_found = find_env_files()
    if env_files_found:
        logger.info(f"Loading environment variables from: {', '.join(env_files_found)}")
    else:
        logger.debug("No .env file found. Loading settings from system environment variables only.")

    try:
        settings_instance = Settings()
    except ValueError as val_err:
        logger.critical(f"CRITICAL ERROR in settings validation: {val_err}")
        raise SystemExit(f"Settings validation failed: {val_err}")

    if settings_instance.SECRET_KEY == PLACEHOLDER_SECRET_KEY:
        logger.warning("SECURITY WARNING: Using the placeholder SECRET_KEY. Generate one with `openssl rand -hex 32`.")
        warnings.warn("SECURITY WARNING: Using the placeholder SECRET_KEY. Please set a strong secret key!")

    if settings_instance.DEFAULT_PAGE_SIZE > settings_instance.MAX_PAGE_SIZE:
        logger.warning(
            f"DEFAULT_PAGE_SIZE ({settings_instance.DEFAULT_PAGE_SIZE}) exceeds MAX_PAGE_SIZE "
            f"({settings_instance.MAX_PAGE_SIZE}); listings will be capped at MAX_PAGE_SIZE."
        )

    logger.info(f"Settings loaded (store backend: {settings_instance.STORE_BACKEND}).")
    return settings_instance


settings = get_settings()
