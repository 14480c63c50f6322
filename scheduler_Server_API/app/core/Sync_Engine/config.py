"""
Configuration for the sync engine.

Policies and limits are loaded from the `[sync]` table of a TOML file and can
be overridden through environment variables.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import tomli
from loguru import logger


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class SyncEngineConfig:
    """Settings of the change-reconciliation engine."""
    # Key carrying the client-generated correlation id on added records
    phantom_id_field: str = "$PhantomId"

    # Strict policies; the permissive defaults drop unknown fields and pass
    # unresolved references through to the store.
    reject_unknown_fields: bool = False
    reject_unresolved_references: bool = False

    # Seconds a table schema stays cached; 0 fetches it on every request
    schema_cache_ttl: int = 0
    schema_cache_size: int = 64

    # Upper bound on concurrent per-row store calls in one sub-batch; 0 = unbounded
    max_concurrent_operations: int = 0

    @classmethod
    def from_toml(cls, config_path: Optional[Path] = None) -> 'SyncEngineConfig':
        """
        Load configuration from a TOML file.

        Args:
            config_path: Path to config file. If None, the default locations are tried.

        Returns:
            SyncEngineConfig instance
        """
        if config_path is None:
            possible_paths = [
                Path.home() / ".config" / "scheduler_sync" / "config.toml",
                Path("config.toml"),
            ]
            for path in possible_paths:
                if path.exists():
                    config_path = path
                    break
            else:
                logger.debug("No sync config file found, using defaults")
                config = cls()
                config._apply_env_overrides()
                return config

        logger.info(f"Loading sync engine config from: {config_path}")

        try:
            with open(config_path, "rb") as f:
                toml_data = tomli.load(f)
            sync_section = toml_data.get("sync", {})
            known = {fld.name for fld in fields(cls)}
            unknown = set(sync_section) - known
            if unknown:
                logger.warning(f"Ignoring unknown sync config keys: {sorted(unknown)}")
            config = cls(**{k: v for k, v in sync_section.items() if k in known})
        except (OSError, tomli.TOMLDecodeError, TypeError) as e:
            logger.error(f"Error loading sync config from {config_path}: {e}")
            logger.warning("Using default sync configuration")
            config = cls()

        config._apply_env_overrides()
        return config

    def _apply_env_overrides(self):
        """Apply environment variable overrides."""
        env_mappings = {
            "SYNC_PHANTOM_ID_FIELD": ("phantom_id_field", str),
            "SYNC_REJECT_UNKNOWN_FIELDS": ("reject_unknown_fields", _parse_bool),
            "SYNC_REJECT_UNRESOLVED_REFERENCES": ("reject_unresolved_references", _parse_bool),
            "SYNC_SCHEMA_CACHE_TTL": ("schema_cache_ttl", int),
            "SYNC_MAX_CONCURRENT_OPERATIONS": ("max_concurrent_operations", int),
        }

        for env_var, (attr, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is None:
                continue
            try:
                setattr(self, attr, converter(value))
                logger.debug(f"Override from env: {env_var} -> {attr} = {value}")
            except ValueError as e:
                logger.warning(f"Failed to apply env override {env_var}: {e}")

    def validate(self) -> List[str]:
        """
        Validate configuration settings.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []
        if not self.phantom_id_field:
            errors.append("phantom_id_field must not be empty")
        if self.schema_cache_ttl < 0:
            errors.append("schema_cache_ttl must be >= 0")
        if self.schema_cache_size < 1:
            errors.append("schema_cache_size must be >= 1")
        if self.max_concurrent_operations < 0:
            errors.append("max_concurrent_operations must be >= 0")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {fld.name: getattr(self, fld.name) for fld in fields(self)}
