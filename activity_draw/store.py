"""
Persistence for the activity probability tree.

A store only knows how to load and save a whole tree; every save is a full
overwrite. `load_or_create` materializes the default tree on first use.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import yaml

from .config_model import ConfigModel, Limits, Policy
from .errors import ActivityConfigError


class ConfigStore(Protocol):
    def load(self) -> Optional[ConfigModel]: ...

    def save(self, model: ConfigModel) -> None: ...


class YamlConfigStore:
    """Tree persisted as a YAML document of plain category/item records."""

    def __init__(self, path: str | Path, *, limits: Optional[Limits] = None, policy: Optional[Policy] = None):
        self.path = Path(path)
        self.limits = limits or Limits()
        self.policy = policy or Policy()

    def load(self) -> Optional[ConfigModel]:
        if not self.path.exists():
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ActivityConfigError(f"Cannot parse activity config {self.path}: {e}") from e
        if not data:
            return None
        return ConfigModel.from_dict(data, limits=self.limits, policy=self.policy)

    def save(self, model: ConfigModel) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(model.to_dict(), f, sort_keys=False, allow_unicode=True)
        logging.debug(f"Saved activity config to {self.path}")


class MemoryConfigStore:
    """Keeps a serialized snapshot, so callers never share objects with the store."""

    def __init__(self, *, limits: Optional[Limits] = None, policy: Optional[Policy] = None):
        self.limits = limits or Limits()
        self.policy = policy or Policy()
        self._blob: Optional[Dict[str, Any]] = None
        self.saves = 0

    def load(self) -> Optional[ConfigModel]:
        if self._blob is None:
            return None
        return ConfigModel.from_dict(copy.deepcopy(self._blob), limits=self.limits, policy=self.policy)

    def save(self, model: ConfigModel) -> None:
        self._blob = copy.deepcopy(model.to_dict())
        self.saves += 1


def default_model(config: Dict[str, Any]) -> ConfigModel:
    """Build the default tree from the `default_tree` section of a merged config."""
    tree = config.get("default_tree")
    if not tree:
        raise ActivityConfigError("default_tree must be provided in configuration")
    return ConfigModel.from_dict(
        copy.deepcopy(tree),
        limits=Limits.from_config(config),
        policy=Policy.from_config(config),
    )


def load_or_create(store: ConfigStore, config: Dict[str, Any]) -> ConfigModel:
    """Load the persisted tree, or persist and return the default one."""
    model = store.load()
    if model is not None:
        return model
    model = default_model(config)
    store.save(model)
    logging.info(f"ℹ️  No saved activity config found; created the default tree ({len(model.categories)} categories)")
    return model


def store_from_config(config: Dict[str, Any]) -> YamlConfigStore:
    path = (config.get("store") or {}).get("config_path")
    if not path:
        raise ActivityConfigError("store.config_path must be provided in configuration")
    return YamlConfigStore(path, limits=Limits.from_config(config), policy=Policy.from_config(config))


__all__ = [
    "ConfigStore",
    "MemoryConfigStore",
    "YamlConfigStore",
    "default_model",
    "load_or_create",
    "store_from_config",
]
