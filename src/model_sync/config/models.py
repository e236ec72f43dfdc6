"""Pydantic models for db.toml configuration."""

from pydantic import BaseModel, Field, field_validator

from model_sync.definitions import ModelDefaults
from model_sync.schema.models import SyncMode, SyncOptions, check_safety_pattern


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = "postgres"  # Defaults to postgres


class SyncSettings(BaseModel):
    """The ``[sync]`` section: default options for sync runs."""

    mode: SyncMode = SyncMode.CREATE
    safety_pattern: str | None = None
    continue_on_error: bool = False
    max_concurrency: int = Field(default=1, ge=1)

    @field_validator("safety_pattern")
    @classmethod
    def _check_safety_pattern(cls, value: str | None) -> str | None:
        return check_safety_pattern(value)

    def to_options(self, **overrides) -> SyncOptions:
        """Build ``SyncOptions`` from these settings, with keyword overrides."""
        values = self.model_dump()
        values.update(overrides)
        return SyncOptions(**values)


class DatabaseConfig(BaseModel):
    """Complete database configuration from db.toml."""

    profiles: dict[str, DatabaseProfile]
    sync: SyncSettings = Field(default_factory=SyncSettings)
    models: ModelDefaults = Field(default_factory=ModelDefaults)


# ============================================================================
# Connection Result
# ============================================================================


class ConnectionResult(BaseModel):
    """Result of connect_and_validate()."""

    success: bool
    profile_name: str | None = None
    database_name: str | None = None
    tables: list[str] = Field(default_factory=list)
    error: str | None = None
