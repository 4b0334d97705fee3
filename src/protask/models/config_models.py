"""Configuration models for ProTask."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from protask.models.view import SortDirection, SortKey, StatusFilter, ViewSpec

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ViewDefaults(BaseModel):
    """Default view used when the caller does not pass one."""

    status_filter: StatusFilter = Field(default=StatusFilter.ALL)
    sort_key: SortKey = Field(default=SortKey.DUE_DATE)
    sort_direction: SortDirection = Field(default=SortDirection.ASC)

    def to_view_spec(self) -> ViewSpec:
        return ViewSpec(
            status_filter=self.status_filter,
            sort_key=self.sort_key,
            sort_direction=self.sort_direction,
        )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(_LOG_LEVELS)}")
        return level


class AppConfig(BaseModel):
    """Main ProTask configuration"""

    app_id: str = Field(default="protask", description="Storage partition prefix")
    view: ViewDefaults = Field(default_factory=ViewDefaults)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("app_id")
    @classmethod
    def validate_app_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("app_id cannot be empty")
        if "/" in v:
            raise ValueError("app_id cannot contain '/'")
        return v.strip()
