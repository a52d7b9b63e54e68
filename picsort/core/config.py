"""
Centralized Configuration Management for picsort

Provides pydantic-based configuration with:
- Environment variable loading (.env support)
- Type validation
- Default values

Usage:
    from picsort.core.config import get_config

    config = get_config()
    print(config.db_path)
    print(config.max_workers)
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_DB_FILENAME = "picsort.db"


class PicsortConfig(BaseSettings):
    """
    Central configuration for picsort

    All settings can be overridden via environment variables with PICSORT_ prefix.
    For example: PICSORT_DB_PATH, PICSORT_MAX_WORKERS, etc.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PICSORT_",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================
    # Store Configuration
    # ============================================

    db_path: Path = Field(
        default=Path(DEFAULT_DB_FILENAME),
        description="Index store file (override via PICSORT_DB_PATH)"
    )

    busy_timeout: int = Field(
        default=30000,
        description="SQLite busy timeout in milliseconds"
    )

    max_retry: int = Field(
        default=8,
        description="Maximum retry attempts for a locked write"
    )

    initial_delay: float = Field(
        default=0.02,
        description="Initial write retry delay in seconds"
    )

    max_delay: float = Field(
        default=0.5,
        description="Maximum write retry delay in seconds"
    )

    insert_timeout: Optional[float] = Field(
        default=None,
        description="Seconds an insert may wait for the writer (None waits indefinitely)"
    )

    # ============================================
    # Ingestion Configuration
    # ============================================

    chunk_size: int = Field(
        default=1024 * 1024,
        description="Bytes read per chunk while fingerprinting"
    )

    max_workers: Optional[int] = Field(
        default=None,
        description="Cap on concurrently running file tasks (None means one thread per file)"
    )

    # ============================================
    # Logging Configuration
    # ============================================

    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @field_validator("chunk_size")
    @classmethod
    def validate_chunk_size(cls, v):
        """Validate chunk size"""
        if v <= 0:
            raise ValueError("chunk_size must be positive")
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v):
        """Validate worker cap"""
        if v is not None and v < 1:
            raise ValueError("max_workers must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(
                f"log_level must be one of: {', '.join(valid_levels)}"
            )
        return v.upper()


# Global config instance
_config: Optional[PicsortConfig] = None


def get_config(force_reload: bool = False) -> PicsortConfig:
    """
    Get the global configuration instance

    Args:
        force_reload: Re-read the environment even if a config is cached

    Returns:
        PicsortConfig instance

    Example:
        >>> config = get_config()
        >>> print(config.db_path)
    """
    global _config

    if _config is None or force_reload:
        _config = PicsortConfig()

    return _config


def reset_config() -> None:
    """Drop the cached configuration (used by tests)"""
    global _config
    _config = None
