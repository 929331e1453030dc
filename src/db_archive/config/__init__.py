"""Configuration loading and models."""

from db_archive.config.loader import load_db_config
from db_archive.config.models import (
    ArchiveConfig,
    DatabaseConfig,
    DatabaseProfile,
    JobSettings,
)

__all__ = [
    "load_db_config",
    "ArchiveConfig",
    "DatabaseConfig",
    "DatabaseProfile",
    "JobSettings",
]
