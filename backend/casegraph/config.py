"""
Configuration module.
"""
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

# Load .env before reading environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


class Settings(BaseModel):
    """Application settings."""

    # Persistence collaborator
    storage_backend: Literal["memory", "firestore"] = os.getenv("CASEGRAPH_STORAGE", "memory")
    google_application_credentials: str = os.getenv(
        "GOOGLE_APPLICATION_CREDENTIALS",
        "./firebase-credentials.json",
    )
    firestore_database: str = os.getenv("FIRESTORE_DATABASE", "(default)")

    # Layout engine
    default_layout: str = os.getenv("CASEGRAPH_DEFAULT_LAYOUT", "hierarchical")
    force_iterations: int = int(os.getenv("CASEGRAPH_FORCE_ITERATIONS", "50"))
    force_damping: float = float(os.getenv("CASEGRAPH_FORCE_DAMPING", "0.85"))
    force_seed: Optional[int] = _optional_int("CASEGRAPH_FORCE_SEED")
    canvas_width: float = float(os.getenv("CASEGRAPH_CANVAS_WIDTH", "1000"))
    canvas_height: float = float(os.getenv("CASEGRAPH_CANVAS_HEIGHT", "1000"))

    # Logging
    log_level: str = os.getenv("CASEGRAPH_LOG_LEVEL", "INFO")

    # API
    api_prefix: str = "/api"
    cors_origins: list = ["*"]

    model_config = ConfigDict(env_file=".env", case_sensitive=False)


# Global settings instance
settings = Settings()


def validate_config() -> bool:
    """
    Check that the configured persistence backend is usable.

    Returns:
        bool: whether the configuration is valid
    """
    if settings.storage_backend == "firestore":
        if not Path(settings.google_application_credentials).exists():
            logger.warning(
                "Firestore credentials file not found: %s",
                settings.google_application_credentials,
            )
            return False

    if not 0.0 < settings.force_damping <= 1.0:
        logger.warning("CASEGRAPH_FORCE_DAMPING must be in (0, 1], got %s", settings.force_damping)
        return False

    if settings.force_iterations < 1:
        logger.warning("CASEGRAPH_FORCE_ITERATIONS must be positive, got %s", settings.force_iterations)
        return False

    return True
