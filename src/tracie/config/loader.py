from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict


DEFAULT_CONFIG_PATH = Path("config.toml")


def load_raw_config(path: str | Path | None = None) -> Dict[str, Any]:
    """
    Load the unified application config (config.toml by default).

    ``TRACIE_CONFIG`` overrides the default location. Returns an empty dict
    when the file is missing so callers can fall back to environment
    variables.
    """
    if path is None:
        path = os.getenv("TRACIE_CONFIG") or DEFAULT_CONFIG_PATH
    target = Path(path)
    if not target.is_file():
        return {}

    with target.open("rb") as handle:
        return tomllib.load(handle)


def as_bool(raw: object) -> bool:
    return str(raw).strip().lower() in ("1", "true", "yes")


__all__ = ["load_raw_config", "as_bool", "DEFAULT_CONFIG_PATH"]
