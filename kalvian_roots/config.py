"""Configuration management for Kalvian Roots.

Loads settings from environment variables and provides validated configuration.
"""

from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file if it exists
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="KALVIAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Persistence
    cache_db_path: Path = Path("./family_networks.db")
    cache_schema_version: int = 2

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_file: Path | None = None

    # Matching
    name_similarity_threshold: float = Field(default=0.80, ge=0.0, le=1.0)
    learn_similarity_threshold: float = Field(default=0.50, ge=0.0, le=1.0)

    # Assembly
    max_parallel_resolutions: int = Field(default=4, ge=1)

    def cache_url(self) -> str:
        """Get the SQLAlchemy URL of the network cache database.

        Returns:
            SQLite URL for ``cache_db_path``
        """
        return f"sqlite:///{self.cache_db_path}"


def get_settings() -> Settings:
    """Build a fresh settings object from the current environment."""
    return Settings()


# Global settings instance
settings = Settings()
