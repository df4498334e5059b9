"""I/O helpers shared across CLI entrypoints and pipeline modules."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

LOGGER = logging.getLogger("vyscore.io")

YAML_SUFFIXES = {".yaml", ".yml"}


def ensure_dir(path: Path) -> Path:
    """Create directory (and parents) if it does not exist."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return a dictionary."""
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    LOGGER.debug("Loaded YAML config %s -> keys=%s", path, list(data.keys()))
    return data


def load_json(path: Path) -> Any:
    """Read JSON from disk."""
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def load_document(path: Path) -> Any:
    """Load a YAML or JSON document, picking the parser from the file suffix."""
    if path.suffix.lower() in YAML_SUFFIXES:
        return load_yaml(path)
    return load_json(path)


def dump_json(path: Path, data: Any, indent: int = 2) -> None:
    """Write JSON to disk (with dataclass support)."""
    def _default(obj: Any) -> Any:
        if is_dataclass(obj):
            return asdict(obj)
        if isinstance(obj, Path):
            return str(obj)
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")

    with path.open("w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=indent, default=_default)
    LOGGER.debug("Wrote JSON file %s", path)


def setup_logging(level: int = logging.INFO) -> None:
    """Configure application logging if not already configured."""
    if logging.getLogger().handlers:
        logging.getLogger().setLevel(level)
        return
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def load_config(path: Optional[Path]) -> Dict[str, Any]:
    """Load the YAML config, or an empty mapping when it is absent."""
    if path is None or not path.exists():
        LOGGER.debug("No config at %s; using defaults", path)
        return {}
    return load_yaml(path)


def resolve_option(cli_value: Any, cfg: Dict[str, Any], key: str, default: Any, cast=float) -> Any:
    """Resolve an option honoring CLI override, then config value, then default."""
    if cli_value is not None:
        return cast(cli_value)
    cfg_value = cfg.get(key)
    if cfg_value is not None:
        try:
            return cast(cfg_value)
        except (TypeError, ValueError):
            LOGGER.warning("Invalid config value %s=%r; falling back to default %r", key, cfg_value, default)
    return default
