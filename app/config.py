"""Application configuration using Pydantic Settings.

Reads configuration from environment variables with sensible defaults.
Credentials for Firestore and Cloud Storage come from the ambient Google
application credentials, never from this file.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application
    # =========================================================================
    environment: Literal["prod", "staging", "dev"] = Field(
        default="dev",
        description="Environment name",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    api_prefix: str = Field(
        default="/api/v1",
        description="Prefix for catalog routers",
    )

    # =========================================================================
    # Document store
    # =========================================================================
    document_store: Literal["memory", "firestore"] = Field(
        default="memory",
        description="Document store backend (memory for local development)",
    )
    firestore_project: str = Field(
        default="",
        description="GCP project hosting the Firestore database",
    )
    firestore_database: str = Field(
        default="(default)",
        description="Firestore database id",
    )

    # =========================================================================
    # Cloud Storage (product images)
    # =========================================================================
    gcs_bucket: str = Field(
        default="catalog-product-images-dev",
        description="Cloud Storage bucket for product main images",
    )
    use_blob_storage: bool = Field(
        default=False,
        description="Upload product images to GCS (file name only when disabled)",
    )

    # =========================================================================
    # Users API (account store collaborator)
    # =========================================================================
    users_api_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the service exposing GET /api/users?id=",
    )
    users_api_timeout: float = Field(
        default=10.0,
        description="Users API request timeout in seconds",
    )

    # =========================================================================
    # Supplier uploads
    # =========================================================================
    upload_max_rows: int = Field(
        default=5000,
        ge=1,
        description="Maximum spreadsheet rows accepted per supplier upload",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def firestore_enabled(self) -> bool:
        """Whether the Firestore backend is selected."""
        return self.document_store == "firestore"

    # =========================================================================
    # Logging
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_json: bool = Field(
        default=True,
        description="Output logs as JSON (for Cloud Logging)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for convenience
settings = get_settings()
