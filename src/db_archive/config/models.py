"""Pydantic models for database configuration and job settings."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_PAGE_SIZE = 1000


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = "postgres"  # Defaults to postgres


class ArchiveConfig(BaseModel):
    """The ``[archive]`` section of db.toml."""

    page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0)
    includes: list[str] = Field(default_factory=list)
    excludes: list[str] = Field(default_factory=list)
    # Tables whose presence means the application is already installed
    managed_tables: list[str] = Field(default_factory=list)
    log_dir: str = "logs"


class DatabaseConfig(BaseModel):
    """Complete database configuration from db.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    archive: ArchiveConfig = Field(default_factory=ArchiveConfig)


# ============================================================================
# Per-invocation settings
# ============================================================================


class JobSettings(BaseModel):
    """Immutable settings for one backup or restore invocation.

    Built once from CLI arguments, db.toml, and the environment, then passed
    to every component.
    """

    model_config = ConfigDict(frozen=True)

    directory: Path
    database_url: str
    provider: str = "postgres"
    profile_name: str | None = None
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0)
    includes: tuple[str, ...] = ()
    excludes: tuple[str, ...] = ()
    managed_tables: tuple[str, ...] = ()
    log_dir: Path = Path("logs")
