"""db.toml loading."""

import tomllib
from pathlib import Path

from model_sync.config.models import DatabaseConfig, DatabaseProfile, SyncSettings
from model_sync.definitions import ModelDefaults


def load_db_config(config_path: Path | None = None) -> DatabaseConfig:
    """Load database configuration from TOML file.

    Args:
        config_path: Path to db.toml (default: db.toml in the current
            working directory)

    Returns:
        DatabaseConfig with all profiles, sync settings and model defaults

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If a section has invalid values
    """
    if config_path is None:
        config_path = Path.cwd() / "db.toml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"Database config not found: {config_path}\n"
            f"Create db.toml with at least one [profiles.<name>] section."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    # Parse profiles
    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        profiles[name] = DatabaseProfile(**profile_data)

    return DatabaseConfig(
        profiles=profiles,
        sync=SyncSettings(**data.get("sync", {})),
        models=ModelDefaults(**data.get("models", {})),
    )
