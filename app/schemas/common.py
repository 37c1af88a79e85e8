"""Common schemas for API requests and responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = Field(default=False)
    error: str = Field(description="Error message")
    error_type: str = Field(description="Error type/class name")
    detail: dict[str, Any] | None = Field(default=None, description="Additional error details")

    model_config = {"extra": "forbid"}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Health status (healthy, degraded)")
    version: str = Field(description="Service version")
    environment: str = Field(description="Environment name")
    checks: dict[str, bool] = Field(default_factory=dict, description="Individual health checks")

    model_config = {"extra": "forbid"}


class CascadeSummary(BaseModel):
    """Outcome of propagating a renamed name into embedding products."""

    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(description="Renamed entity, e.g. classification:<id>")
    matched: int = Field(default=0, description="Products referencing the source")
    updated: int = Field(default=0, description="Products rewritten")
    failed_ids: list[str] = Field(
        default_factory=list,
        alias="failedIds",
        description="Products left with a stale embedded name",
    )

    @property
    def complete(self) -> bool:
        return not self.failed_ids
