"""
Configuration Management for EduNest

Loads configuration from ~/.edunest/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

logger = logging.getLogger("edunest.config")

# Default config paths
CONFIG_DIR = Path.home() / ".edunest"
CONFIG_PATH = CONFIG_DIR / "config.json"


@dataclass
class StoreConfig:
    """Supabase record store configuration"""
    url: str = ""
    service_key: str = ""
    materials_table: str = "materials"
    scope_table: str = "child_subjects"


@dataclass
class SearchConfig:
    """Search pipeline limits and retry policy"""
    max_results: int = 15
    candidate_limit: int = 100
    store_attempts: int = 3
    retry_backoff_seconds: float = 1.0


@dataclass
class ServerConfig:
    """MCP server configuration"""
    name: str = "edunest-search"


@dataclass
class EdunestConfig:
    """Main EduNest configuration"""
    store: StoreConfig = field(default_factory=StoreConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def _parse_store_config(data: dict) -> StoreConfig:
    """Parse store section from config dict"""
    store_data = data.get("store", {})
    return StoreConfig(
        url=store_data.get("url", ""),
        service_key=store_data.get("service_key", ""),
        materials_table=store_data.get("materials_table", "materials"),
        scope_table=store_data.get("scope_table", "child_subjects"),
    )


def _parse_search_config(data: dict) -> SearchConfig:
    """Parse search section from config dict"""
    search_data = data.get("search", {})
    return SearchConfig(
        max_results=int(search_data.get("max_results", 15)),
        candidate_limit=int(search_data.get("candidate_limit", 100)),
        store_attempts=int(search_data.get("store_attempts", 3)),
        retry_backoff_seconds=float(search_data.get("retry_backoff_seconds", 1.0)),
    )


def _parse_server_config(data: dict) -> ServerConfig:
    """Parse server section from config dict"""
    server_data = data.get("server", {})
    return ServerConfig(
        name=server_data.get("name", "edunest-search"),
    )


def load_config() -> EdunestConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.edunest/config.json)
    3. Default values
    """
    config = EdunestConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.store = _parse_store_config(data)
            config.search = _parse_search_config(data)
            config.server = _parse_server_config(data)
        except (json.JSONDecodeError, IOError, ValueError, TypeError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    # Environment variable overrides
    if os.getenv("SUPABASE_URL"):
        config.store.url = os.getenv("SUPABASE_URL")
    if os.getenv("SUPABASE_SERVICE_ROLE_KEY"):
        config.store.service_key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

    _env_search_map = {
        "EDUNEST_MAX_RESULTS": ("max_results", int),
        "EDUNEST_CANDIDATE_LIMIT": ("candidate_limit", int),
        "EDUNEST_STORE_ATTEMPTS": ("store_attempts", int),
        "EDUNEST_RETRY_BACKOFF": ("retry_backoff_seconds", float),
    }
    for env_var, (attr, cast) in _env_search_map.items():
        val = os.getenv(env_var)
        if val:
            try:
                setattr(config.search, attr, cast(val))
            except ValueError:
                logger.warning("Ignoring invalid %s=%r", env_var, val)

    if os.getenv("MCP_SERVER_NAME"):
        config.server.name = os.getenv("MCP_SERVER_NAME")

    return config
