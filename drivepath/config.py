import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from .storage.cache import DEFAULT_TTL, MAX_COST, NUM_COUNTERS
from .storage.client import DEFAULT_TIMEOUT
from .storage.listing import DEFAULT_PAGE_SIZE

ENV_PREFIX = "DRIVEPATH_"


def load_config(config_path="drivepath.yaml"):
    """
    Loads configuration from a YAML file.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file {config_path} not found.")

    with open(path, "r") as f:
        config = yaml.safe_load(f)

    return config or {}


@dataclass
class StorageConfig:
    name: str = ""
    work_dir: str = "/"
    credential: str = ""
    cache_ttl: float = DEFAULT_TTL
    cache_max_cost: int = MAX_COST
    cache_num_counters: int = NUM_COUNTERS
    page_size: int = DEFAULT_PAGE_SIZE
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_dict(cls, config: dict) -> "StorageConfig":
        """Reads the `storage:` section, ignoring unknown keys."""
        section = (config or {}).get("storage") or {}
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in section.items() if k in known})

    def apply_env(self, environ=None) -> "StorageConfig":
        """Overrides name, work_dir and credential from DRIVEPATH_* variables."""
        environ = os.environ if environ is None else environ
        for key in ("name", "work_dir", "credential"):
            value = environ.get(f"{ENV_PREFIX}{key.upper()}")
            if value:
                setattr(self, key, value)
        return self


def load_storage_config(config_path: Optional[str] = None, environ=None) -> StorageConfig:
    """
    Builds a StorageConfig from an optional YAML file and the environment.
    The environment wins over the file.
    """
    config = load_config(config_path) if config_path else {}
    return StorageConfig.from_dict(config).apply_env(environ)
