"""Database profile resolution and synchronizer wiring.

Profiles live in ``db.toml``; the active one is chosen by, in order:

1. An explicit ``profile_name`` argument
2. The ``{env_prefix}DB_PROFILE`` environment variable
3. The ``.db-profile`` lock file in the current working directory,
   written by a successful ``connect_and_validate()``

Usage:
    from model_sync.factory import connect_and_validate, get_synchronizer

    result = await connect_and_validate("local")
    print(result.database_name, result.tables)

    async with get_synchronizer("local") as synchronizer:
        report = await synchronizer.sync(person, options)
"""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from urllib.parse import quote, unquote, urlsplit

from model_sync.adapters.postgres import AsyncPostgresAdapter
from model_sync.config.loader import load_db_config
from model_sync.config.models import ConnectionResult, DatabaseProfile
from model_sync.schema.ddl import PostgresDDLExecutor
from model_sync.schema.introspector import SchemaIntrospector
from model_sync.schema.sync import SchemaSynchronizer

logger = logging.getLogger(__name__)

# Profile lock file path
_PROFILE_LOCK_FILE = Path.cwd() / ".db-profile"


# ============================================================================
# Profile Lock File Operations
# ============================================================================


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


def read_profile_lock() -> str | None:
    """Read profile name from lock file.

    Returns:
        Profile name if lock file exists, None otherwise
    """
    if _PROFILE_LOCK_FILE.exists():
        return _PROFILE_LOCK_FILE.read_text().strip()
    return None


def write_profile_lock(profile_name: str) -> None:
    """Write profile name to lock file.

    Only call this after a successful connection check.
    """
    _PROFILE_LOCK_FILE.write_text(profile_name)


def clear_profile_lock() -> None:
    """Remove profile lock file."""
    if _PROFILE_LOCK_FILE.exists():
        _PROFILE_LOCK_FILE.unlink()


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from env var or lock file.

    Priority:
    1. ``{env_prefix}DB_PROFILE`` env var (for initial connect or CI/CD)
    2. .db-profile file (profile from a previous successful connect)
    3. Raise ProfileNotFoundError

    Args:
        env_prefix: Prefix for the environment variable (e.g. ``"MYAPP_"``
            reads ``MYAPP_DB_PROFILE``).

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    env_var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    lock_profile = read_profile_lock()
    if lock_profile:
        return lock_profile

    raise ProfileNotFoundError(
        "No database profile configured for model-sync.\n"
        f"Set {env_var}=<name> or call connect_and_validate(<name>)."
    )


def get_active_profile(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
) -> tuple[str, DatabaseProfile]:
    """Get profile name and configuration.

    Raises:
        ProfileNotFoundError: If no profile configured
        KeyError: If profile not found in db.toml
    """
    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix)
    config = load_db_config(config_path)

    if profile_name not in config.profiles:
        raise KeyError(
            f"Profile '{profile_name}' not found in db.toml.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )

    return profile_name, config.profiles[profile_name]


# ============================================================================
# URL Helpers
# ============================================================================


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    The password is URL-encoded before it replaces ``[YOUR-PASSWORD]``.
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def database_name_from_url(database_url: str) -> str | None:
    """Return the database name (URL path component), or None if absent.

    >>> database_name_from_url("postgresql://u:p@localhost:5432/app_test")
    'app_test'
    """
    name = unquote(urlsplit(database_url).path.lstrip("/"))
    return name or None


def _resolve_database_url(
    profile_name: str | None,
    database_url: str | None,
    env_prefix: str,
) -> str:
    if database_url:
        return database_url
    _, profile = get_active_profile(profile_name, env_prefix)
    return resolve_url(profile)


# ============================================================================
# Connection Check
# ============================================================================


async def connect_and_validate(
    profile_name: str | None = None,
    env_prefix: str = "",
) -> ConnectionResult:
    """Check that a profile's database is reachable, then lock it in.

    On success the profile name is written to the ``.db-profile`` lock
    file, so later calls without an explicit profile use it.

    Args:
        profile_name: Profile name from db.toml.  If None, uses the
            ``{env_prefix}DB_PROFILE`` env var or an existing lock file.
        env_prefix: Prefix for environment variable lookup.

    Returns:
        ConnectionResult with the database name and its tables, or the error
    """
    if profile_name is None:
        try:
            profile_name = get_active_profile_name(env_prefix)
        except ProfileNotFoundError as e:
            return ConnectionResult(success=False, error=str(e))

    try:
        _, profile = get_active_profile(profile_name, env_prefix)
    except (FileNotFoundError, KeyError) as e:
        return ConnectionResult(success=False, profile_name=profile_name, error=str(e))

    try:
        async with SchemaIntrospector(resolve_url(profile)) as introspector:
            await introspector.test_connection()
            database_name = await introspector.get_database_name()
            tables = await introspector.list_tables()
    except Exception as e:
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            error=f"Failed to connect to database: {e}",
        )

    write_profile_lock(profile_name)
    logger.info("Connected to %s (profile %s)", database_name, profile_name)
    return ConnectionResult(
        success=True,
        profile_name=profile_name,
        database_name=database_name,
        tables=tables,
    )


# ============================================================================
# Factories
# ============================================================================


async def get_adapter(
    profile_name: str | None = None,
    database_url: str | None = None,
    env_prefix: str = "",
) -> AsyncPostgresAdapter:
    """Create a new ``AsyncPostgresAdapter``; the caller closes it.

    ``database_url`` takes precedence over profile resolution.

    Raises:
        ProfileNotFoundError: If neither a URL nor a profile is available
        KeyError: If the profile is not found in db.toml
    """
    url = _resolve_database_url(profile_name, database_url, env_prefix)
    return AsyncPostgresAdapter(database_url=url)


@asynccontextmanager
async def get_synchronizer(
    profile_name: str | None = None,
    database_url: str | None = None,
    env_prefix: str = "",
) -> AsyncIterator[SchemaSynchronizer]:
    """Open an introspection connection and a DDL adapter, and yield a
    ``SchemaSynchronizer`` wired to both.

    The safety gate matches against the database name from the URL path;
    if the URL has none, the server's ``current_database()`` is used.
    Both connections are closed on exit.
    """
    url = _resolve_database_url(profile_name, database_url, env_prefix)
    adapter = AsyncPostgresAdapter(database_url=url)
    try:
        async with SchemaIntrospector(url) as introspector:
            database_name = database_name_from_url(url)
            if database_name is None:
                database_name = await introspector.get_database_name()
            yield SchemaSynchronizer(
                introspector, PostgresDDLExecutor(adapter), database_name
            )
    finally:
        await adapter.close()
