"""
Data-access configuration loader (search backend, local snapshot, source selection).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "data_access.yml"


class IndexNames(BaseModel):
    test_results: str = "test_results"
    test_scenarios: str = "test_scenarios"
    historical_runs: str = "historical_runs"
    suite_data: str = "suite_data"


class SearchBackendConfig(BaseModel):
    enabled: bool = False
    host: str = "http://localhost:9200"
    username: Optional[str] = None
    password: Optional[str] = None
    api_key: Optional[str] = None
    # auth is attached by the proxy when requests are routed through one
    use_proxy: bool = False
    verify_tls: bool = True
    timeout_seconds: float = Field(default=10.0, gt=0, le=300)
    indices: IndexNames = Field(default_factory=IndexNames)


class SnapshotConfig(BaseModel):
    data_dir: str = "data/snapshot"
    base_url: Optional[str] = None


class SourceSelectionConfig(BaseModel):
    check_interval_seconds: float = Field(default=60.0, ge=0)


class DataAccessConfig(BaseModel):
    search_backend: SearchBackendConfig = Field(default_factory=SearchBackendConfig)
    snapshot: SnapshotConfig = Field(default_factory=SnapshotConfig)
    source_selection: SourceSelectionConfig = Field(default_factory=SourceSelectionConfig)


# env var -> (section, key); nested index names use a dotted key
_ENV_OVERRIDES = {
    "QA_SEARCH_ENABLED": ("search_backend", "enabled"),
    "QA_SEARCH_HOST": ("search_backend", "host"),
    "QA_SEARCH_USERNAME": ("search_backend", "username"),
    "QA_SEARCH_PASSWORD": ("search_backend", "password"),
    "QA_SEARCH_API_KEY": ("search_backend", "api_key"),
    "QA_SEARCH_USE_PROXY": ("search_backend", "use_proxy"),
    "QA_SEARCH_VERIFY_TLS": ("search_backend", "verify_tls"),
    "QA_SEARCH_TIMEOUT_SECONDS": ("search_backend", "timeout_seconds"),
    "QA_SEARCH_INDEX_TEST_RESULTS": ("search_backend", "indices.test_results"),
    "QA_SEARCH_INDEX_TEST_SCENARIOS": ("search_backend", "indices.test_scenarios"),
    "QA_SEARCH_INDEX_HISTORICAL_RUNS": ("search_backend", "indices.historical_runs"),
    "QA_SEARCH_INDEX_SUITE_DATA": ("search_backend", "indices.suite_data"),
    "QA_SNAPSHOT_DIR": ("snapshot", "data_dir"),
    "QA_SNAPSHOT_BASE_URL": ("snapshot", "base_url"),
    "QA_SOURCE_CHECK_INTERVAL_SECONDS": ("source_selection", "check_interval_seconds"),
}


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is None or not value.strip():
            continue
        target = data
        *parents, leaf = [section] + key.split(".")
        for parent in parents:
            if not isinstance(target.get(parent), dict):
                target[parent] = {}
            target = target[parent]
        target[leaf] = value.strip()
        logger.debug("Config override from %s", env_name)
    return data


def load_data_access_config(config_path: Optional[Path] = None) -> DataAccessConfig:
    """
    Load and validate the data-access configuration from a YAML file.

    Environment variables (``QA_SEARCH_*``, ``QA_SNAPSHOT_*``,
    ``QA_SOURCE_CHECK_INTERVAL_SECONDS``) override values from the file.

    Args:
        config_path: Path to config file. Defaults to config/data_access.yml

    Returns:
        Validated DataAccessConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config doesn't match schema
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        raise FileNotFoundError(f"Data access config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    data = _apply_env_overrides(data)

    try:
        cfg = DataAccessConfig(**data)
        logger.info(
            "Loaded data access config from %s (search backend %s)",
            config_path,
            "enabled" if cfg.search_backend.enabled else "disabled",
        )
        return cfg
    except ValidationError as e:
        logger.error("Data access config validation failed: %s", e)
        raise
