# config.py
# Description: Configuration settings for the scheduler sync server.
#
# Imports
import os
from pathlib import Path
from typing import Any, Dict, List, Optional
#
# 3rd-party Libraries
from dotenv import load_dotenv
from loguru import logger
#
# Local Imports
from scheduler_Server_API.app.core.Sync_Engine.config import SyncEngineConfig
from scheduler_Server_API.app.core.Sync_Engine.models import Collection
#
########################################################################################################################
#
# Functions:

# --- Constants ---
DEFAULT_API_KEY = "default-secret-key-for-single-user"
DEFAULT_APPWRITE_ENDPOINT = "https://cloud.appwrite.io/v1"
STORE_BACKENDS = ("memory", "sqlite", "appwrite")


def _split_origins(raw: Optional[str]) -> List[str]:
    if not raw:
        return ["http://localhost:3000"]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def load_settings() -> Dict[str, Any]:
    """Loads all settings from environment variables (and an optional .env file) into a dictionary."""
    load_dotenv()

    # --- Application Mode ---
    single_user_mode_str = os.getenv("APP_MODE", "single").lower()
    single_user_mode = single_user_mode_str != "multi"
    single_user_api_key = os.getenv("API_KEY", DEFAULT_API_KEY)

    # --- Logging / HTTP ---
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    allowed_origins = _split_origins(os.getenv("ALLOWED_ORIGINS"))

    # --- Row Store ---
    store_backend = os.getenv("STORE_BACKEND", "sqlite").lower()
    sqlite_db_path = Path(os.getenv("SQLITE_DB_PATH", "./scheduler_data/scheduler.sqlite"))

    # Table ids per collection, e.g. EVENTS_TABLE_ID; default to the collection name
    table_ids = {
        collection: os.getenv(f"{collection.name}_TABLE_ID", collection.value)
        for collection in Collection
    }

    sync_config_path = os.getenv("SYNC_CONFIG_PATH")

    config_dict = {
        # General App
        "APP_MODE_STR": single_user_mode_str,
        "SINGLE_USER_MODE": single_user_mode,
        "SINGLE_USER_API_KEY": single_user_api_key,
        "LOG_LEVEL": log_level,
        "ALLOWED_ORIGINS": allowed_origins,

        # Store
        "STORE_BACKEND": store_backend,
        "SQLITE_DB_PATH": sqlite_db_path,
        "APPWRITE_ENDPOINT": os.getenv("APPWRITE_ENDPOINT", DEFAULT_APPWRITE_ENDPOINT),
        "PROJECT_ID": os.getenv("PROJECT_ID"),
        "DATABASE_ID": os.getenv("DATABASE_ID"),
        "APPWRITE_API_KEY": os.getenv("APPWRITE_API_KEY"),
        "STORE_TIMEOUT": float(os.getenv("STORE_TIMEOUT", "30")),
        "TABLE_IDS": table_ids,

        # Engine
        "SYNC_CONFIG_PATH": Path(sync_config_path) if sync_config_path else None,
    }

    # --- Warnings ---
    if store_backend not in STORE_BACKENDS:
        logger.warning(f"Unknown STORE_BACKEND '{store_backend}', expected one of {STORE_BACKENDS}")
    if config_dict["SINGLE_USER_MODE"] and config_dict["SINGLE_USER_API_KEY"] == DEFAULT_API_KEY:
        logger.warning("Using default API_KEY for single-user mode. Set the API_KEY environment variable for security.")
    if store_backend == "appwrite" and not (config_dict["PROJECT_ID"] and config_dict["DATABASE_ID"]):
        logger.warning("STORE_BACKEND=appwrite requires PROJECT_ID and DATABASE_ID to be set.")

    return config_dict


def load_sync_engine_config(config_dict: Dict[str, Any]) -> SyncEngineConfig:
    engine_config = SyncEngineConfig.from_toml(config_dict["SYNC_CONFIG_PATH"])
    for problem in engine_config.validate():
        logger.error(f"Invalid sync engine setting: {problem}")
    return engine_config


# --- Global Settings Object ---
# Load the settings when the module is imported
settings = load_settings()
sync_engine_config = load_sync_engine_config(settings)

ALLOWED_ORIGINS = settings["ALLOWED_ORIGINS"]

#
# End of config.py
########################################################################################################################
