"""Job settings and database connection factory.

Resolves where a job connects, in priority order:

1. Explicit ``--database``/``--connection`` values.
2. A db.toml profile, named by argument or the ``{prefix}DB_PROFILE``
   environment variable.
3. The ``{prefix}DATABASE_URL`` environment variable.

Also runs the checks that must pass before a job touches the archive or
the database: connectivity, and for restore, the install-state gate.

Usage:
    settings = build_settings(directory="backup/2026-01-15", profile_name="prod")
    client = await connect(settings)
    await check_not_installed(settings, client, ["orders", "customers"])
"""

import logging
import os
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import quote

from pydantic import ValidationError

from db_archive.adapters.base import DatabaseClient
from db_archive.adapters.postgres import AsyncPostgresAdapter
from db_archive.config.loader import load_db_config
from db_archive.config.models import DatabaseConfig, DatabaseProfile, JobSettings
from db_archive.errors import (
    ConfigurationError,
    ConnectivityError,
    PreconditionError,
    ProfileNotFoundError,
)
from db_archive.schema.comparator import validate_schema
from db_archive.schema.introspector import SchemaIntrospector

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = {"postgres", "postgresql"}


# ============================================================================
# Profile resolution
# ============================================================================


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from the environment.

    Args:
        env_prefix: Prefix for the variable (``"APP_"`` reads
            ``APP_DB_PROFILE``).

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    env_profile = os.environ.get(f"{env_prefix}DB_PROFILE")
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Set {env_prefix}DB_PROFILE, pass --profile, or pass "
        "--database and --connection."
    )


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def _load_config(config_path: Path | None, required: bool) -> DatabaseConfig:
    """Load db.toml, translating loader failures into ``ConfigurationError``."""
    path = config_path or Path.cwd() / "db.toml"
    if not path.exists() and not required:
        return DatabaseConfig()
    try:
        return load_db_config(path)
    except FileNotFoundError as e:
        raise ConfigurationError(str(e)) from e
    except (ValueError, ValidationError) as e:
        raise ConfigurationError(f"Invalid config {path}: {e}") from e


# ============================================================================
# Settings
# ============================================================================


def build_settings(
    directory: str | Path,
    config_path: str | Path | None = None,
    profile_name: str | None = None,
    database_type: str | None = None,
    connection: str | None = None,
    includes: list[str] | None = None,
    excludes: list[str] | None = None,
    page_size: int | None = None,
    log_dir: str | Path | None = None,
    env_prefix: str = "",
) -> JobSettings:
    """Build the immutable settings for one job.

    Command-line includes replace configured includes; command-line
    excludes are added to configured excludes.

    Raises:
        ConfigurationError: Missing or invalid connection settings.
        ProfileNotFoundError: No connection source could be resolved.
    """
    if bool(database_type) != bool(connection):
        raise ConfigurationError(
            "--database and --connection must be given together"
        )

    config = _load_config(
        Path(config_path) if config_path else None,
        required=config_path is not None,
    )

    if database_type and connection:
        provider, url = database_type, connection
    else:
        url = None
        provider = "postgres"
        if profile_name is None:
            try:
                profile_name = get_active_profile_name(env_prefix)
            except ProfileNotFoundError:
                url = os.environ.get(f"{env_prefix}DATABASE_URL")
                if not url:
                    raise

        if url is None:
            if profile_name not in config.profiles:
                available = ", ".join(config.profiles) or "none"
                raise ProfileNotFoundError(
                    f"Profile '{profile_name}' not found. Available: {available}"
                )
            profile = config.profiles[profile_name]
            provider, url = profile.provider, resolve_url(profile)

    if provider.lower() not in SUPPORTED_PROVIDERS:
        raise ConfigurationError(f"Unsupported database type: {provider}")
    if not url:
        raise ConfigurationError("Connection string is empty")

    archive = config.archive
    try:
        return JobSettings(
            directory=Path(directory),
            database_url=url,
            provider=provider.lower(),
            profile_name=profile_name,
            page_size=page_size if page_size is not None else archive.page_size,
            includes=tuple(includes if includes else archive.includes),
            excludes=tuple(dict.fromkeys([*archive.excludes, *(excludes or [])])),
            managed_tables=tuple(archive.managed_tables),
            log_dir=Path(log_dir) if log_dir else Path(archive.log_dir),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e


# ============================================================================
# Connection and precondition checks
# ============================================================================


async def connect(settings: JobSettings) -> AsyncPostgresAdapter:
    """Verify connectivity, then create the adapter for the job.

    Args:
        settings: Job settings with the resolved ``database_url``.

    Returns:
        ``AsyncPostgresAdapter`` shared by the whole job.

    Raises:
        ConnectivityError: If ``SELECT 1`` cannot be run.
    """
    try:
        async with SchemaIntrospector(settings.database_url) as introspector:
            await introspector.test_connection()
    except Exception as e:
        raise ConnectivityError(f"Failed to connect to database: {e}") from e

    logger.debug("Connected to %s", settings.profile_name or "database")
    return AsyncPostgresAdapter(database_url=settings.database_url)


async def check_not_installed(
    settings: JobSettings,
    client: DatabaseClient,
    tables: Iterable[str],
) -> None:
    """Refuse to restore into a database that is already installed.

    With ``settings.managed_tables`` configured, the destination counts as
    installed when every managed table exists.  Otherwise it counts as
    installed when any of ``tables`` (the tables about to be restored)
    already exists and holds rows.

    Args:
        settings: Job settings.
        client: Connected destination.
        tables: Catalog tables selected for restore.

    Raises:
        PreconditionError: If the destination is installed.
        ConnectivityError: If the destination cannot be introspected.
    """
    if settings.managed_tables:
        try:
            async with SchemaIntrospector(settings.database_url) as introspector:
                actual_columns = await introspector.get_column_names()
        except Exception as e:
            raise ConnectivityError(f"Failed to inspect destination: {e}") from e

        expected = {table: set() for table in settings.managed_tables}
        validation = validate_schema(actual_columns, expected)
        logger.debug("Install-state check: %s", validation.format_report())

        if validation.valid:
            raise PreconditionError(
                "Destination database is already installed "
                f"({', '.join(settings.managed_tables)} exist); restore refused"
            )
        return

    populated: list[str] = []
    try:
        for table in tables:
            if await client.table_exists(table) and await client.count(table) > 0:
                populated.append(table)
    except Exception as e:
        raise ConnectivityError(f"Failed to inspect destination: {e}") from e

    if populated:
        raise PreconditionError(
            f"Destination already holds rows in {', '.join(populated)}; "
            "restore refused (pass --force to restore anyway)"
        )
