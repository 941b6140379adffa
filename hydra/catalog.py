"""Client configuration and model catalog loader.

Loads client defaults from defaults.toml and the static model catalog
from models.toml. Both files ship in hydra/config/; a different path can
be passed explicitly. Environment variables override the connection
settings:
  HYDRA_BASE_URL  backend base URL
  HYDRA_MODEL     default model id
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path

from hydra.schemas.config import ClientConfig, ModelInfo

# Default config directory inside the hydra package
_CONFIG_DIR = Path(__file__).parent / "config"

_ENV_OVERRIDES = {
    "HYDRA_BASE_URL": "base_url",
    "HYDRA_MODEL": "default_model",
}


def load_client_config(config_path: Path | None = None) -> ClientConfig:
    """Load client defaults from a TOML file.

    Args:
        config_path: Path to defaults.toml. Defaults to hydra/config/defaults.toml.

    Returns:
        ClientConfig with file values, then environment overrides applied.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the file has no [client] table.
    """
    path = config_path or _CONFIG_DIR / "defaults.toml"
    if not path.exists():
        raise FileNotFoundError(f"Client config not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    section = raw.get("client")
    if not isinstance(section, dict):
        raise ValueError(f"No [client] section found in {path}")

    values = dict(section)
    if "system_prompt" in values:
        values["system_prompt"] = str(values["system_prompt"]).strip()

    for env_var, field in _ENV_OVERRIDES.items():
        override = os.environ.get(env_var)
        if override:
            values[field] = override

    return ClientConfig(**values)


def load_models(config_path: Path | None = None) -> dict[str, ModelInfo]:
    """Load the model catalog from a TOML file.

    Args:
        config_path: Path to models.toml. Defaults to hydra/config/models.toml.

    Returns:
        Dictionary mapping catalog keys to ModelInfo instances.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the TOML has no [models] entries.
    """
    path = config_path or _CONFIG_DIR / "models.toml"
    if not path.exists():
        raise FileNotFoundError(f"Model catalog not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    models_section = raw.get("models")
    if not models_section or not isinstance(models_section, dict):
        raise ValueError(f"No [models] section found in {path}")

    return {
        key: ModelInfo(**entry)
        for key, entry in models_section.items()
        if isinstance(entry, dict)
    }


def get_model(catalog: dict[str, ModelInfo], model: str) -> ModelInfo | None:
    """Look up a catalog entry by model id or catalog key."""
    if model in catalog:
        return catalog[model]
    for info in catalog.values():
        if info.id == model:
            return info
    return None
