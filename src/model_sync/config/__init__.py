"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from model_sync.config import load_db_config, DatabaseProfile, DatabaseConfig
"""

from model_sync.config.loader import load_db_config
from model_sync.config.models import DatabaseConfig, DatabaseProfile, SyncSettings

__all__ = ["load_db_config", "DatabaseConfig", "DatabaseProfile", "SyncSettings"]
